from setuptools import setup, find_packages

setup(
    name="structured_payoff_engine",
    version="0.1.0",
    description="Declarative structured payoff evaluation engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
