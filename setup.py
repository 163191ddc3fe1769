from setuptools import setup, find_packages

setup(
    name="gcra-limiter",
    version="0.1.0",
    packages=find_packages(include=["gcra", "gcra.*"]),
    python_requires=">=3.11",
    install_requires=[
        "redis>=5.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
