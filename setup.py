"""
setup.py for the slmpc Python package.

The package lives under python/ and is installed with:
    pip install -e .

Development tools (pytest, hypothesis, linters):
    pip install -e ".[dev]"
"""

from setuptools import find_packages, setup

setup(
    name="slmpc",
    version="0.1.0",
    description="Successive-linearization MPC with a warm-started active-set QP solver",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
)
