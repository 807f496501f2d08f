#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for StockRisk Workbook Analytics

Installs the ``stockrisk`` package and the ``stockrisk`` command line tool.
"""

from setuptools import setup, find_packages
from pathlib import Path

VERSION = "1.0.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = (
        "StockRisk Workbook Analytics - inventory and OSR spreadsheet "
        "ingestion with business metrics"
    )

setup(
    name="stockrisk-analytics",
    version=VERSION,
    description="Inventory and stock-risk workbook ingestion and business metrics",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="StockRisk Platform Team",
    license="MIT",
    python_requires=">=3.10",
    packages=find_packages(include=["stockrisk", "stockrisk.*"]),
    install_requires=[
        "pydantic>=2.0",
        "openpyxl>=3.1",
        "xlrd>=2.0",
        "prometheus-client>=0.17",
        "typer>=0.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "stockrisk=stockrisk.cli:app",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
)
