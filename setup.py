from setuptools import setup, find_packages

setup(
    name="cashflow_engine",
    version="0.1.0",
    description="Cash-flow valuation engine: yield and curve analytics for legs of cash flows",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.9",
)
