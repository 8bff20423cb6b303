#!/usr/bin/env python3
"""
Setup script for the tasklink package.
"""

from setuptools import find_packages, setup

from pathlib import Path

README = Path(__file__).parent / "DESIGN.md"

setup(
    name="tasklink",
    version="0.3.0",
    description="Reconcile task-like items between a primary store and other providers",
    long_description=README.read_text(encoding="utf-8") if README.exists() else "",
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    packages=find_packages(include=["tasklink", "tasklink.*"]),
    install_requires=[
        "scipy>=1.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tasklink=tasklink.main:main",
        ],
    },
)
