#!/usr/bin/env python3
"""Setup script for demoblaze-load-test."""

from setuptools import setup, find_packages

setup(
    name="demoblaze-load-test",
    version="0.1.0",
    description="Weighted scenario load testing for the Demoblaze e-commerce API",
    author="Demoblaze QA Team",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "bin"]),
    py_modules=["locustfile"],
    include_package_data=True,
    install_requires=[
        "locust>=2.20.0",
        "requests>=2.28.0",
        "PyYAML>=6.0",
        "jinja2>=3.1.0",
        "tabulate>=0.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "demoblaze-load-test=runner.orchestrator:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
