from setuptools import setup, find_packages

setup(
    name="alliance-opr",
    version="0.1.0",
    description="Ridge OPR, defense impact and hybrid contribution index for alliance-based competitions",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.22.4",
        "pandas>=1.5.3",
        "scipy>=1.10.0",
        "scikit-learn>=1.3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "alliance-opr=alliance_opr.main:main",
        ],
    },
)
