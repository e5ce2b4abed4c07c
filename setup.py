from pathlib import Path

from setuptools import find_packages, setup

NAME = "ciushr"
VERSION = "0.4.0"

README = Path("README.md")
LONG_DESCRIPTION = README.read_text(encoding="utf-8") if README.exists() else ""

setup(
    name=NAME,
    version=VERSION,
    description="Croatian CIUS-2025 UBL 2.1 e-invoice generation and parsing",
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "lxml>=4.9",
        "openpyxl>=3.1",
    ],
    extras_require={
        "test": ["pytest>=7", "tzdata"],
    },
    entry_points={
        "console_scripts": [
            "ciushr=ciushr.cli:main",
        ],
    },
)
