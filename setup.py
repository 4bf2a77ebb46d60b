from setuptools import setup, find_packages

setup(
    name="shellask",
    version="0.1.0",
    description="Interactive prompt composer and session tracker for turning LLM answers into shell commands",
    author="phisanti",
    author_email="tisalon@outlook.com",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "mistralai>=1.2.0,<2",
        "typer>=0.12.0",
        "rich>=13.7.0",
        "prompt_toolkit>=3.0.43",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "shellask=shellask.main:shellask",
        ],
    },
    python_requires=">=3.10",
)
