"""Setup script for B-Call Voting Blocs package."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="bcall-voting-blocs",
    version="1.0.0",
    author="B-Call Voting Blocs Project",
    description="Ideological position and cohesion scores for legislators with pivot-anchored voting blocs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["bcall", "bcall.*"], exclude=["bcall.tests", "bcall.tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bcall=bcall.main:main",
        ],
    },
)
