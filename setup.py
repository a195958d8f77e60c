#!/usr/bin/env python3
"""
Setup script for AutoSolve.

Installation:
    pip install -e .

    # With test dependencies
    pip install -e ".[dev]"

Usage after installation:
    autosolve --help
    autosolve status
    autosolve stats --symptom "rough idle" --code P0171
"""

from setuptools import setup, find_packages

setup(
    name="autosolve",
    version="1.0.0",
    description="AutoSolve vehicle diagnostic assistant core: usage accounting and repair outcomes",
    author="AutoSolve Team",
    license="MIT",

    # Package configuration
    package_dir={"": "backend"},
    packages=find_packages("backend", exclude=["tests", "tests.*"]),

    # Python version requirement
    python_requires=">=3.11",

    # Dependencies
    install_requires=[
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-json-logger>=2.0.7",
        "click>=8.0.0",
        "rich>=13.0.0",
    ],

    # Optional dependencies for development
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },

    # Entry points for CLI commands
    entry_points={
        "console_scripts": [
            "autosolve=autosolve.cli:main",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Utilities",
    ],

    keywords=[
        "automotive",
        "diagnostics",
        "dtc",
        "obd",
        "vehicle",
        "repair",
    ],
)
