"""StepCalc - calculator with step-by-step traces."""
from setuptools import setup, find_packages

setup(
    name="stepcalc",
    version="0.1.0",
    description="Calculator with step-by-step traces, graph sampling and history",
    author="StepCalc contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "stepcalc": ["templates/*"],
    },
    install_requires=[
        "click>=8.1.0",
        "jinja2>=3.1.0",
        "rich>=13.0.0",
        "questionary>=2.0.0",
        "sympy>=1.12",
        "mpmath>=1.3.0",
        "openai>=1.0.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "stepcalc=stepcalc.cli:main",
        ],
    },
    python_requires=">=3.10",
)
