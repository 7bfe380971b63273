"""
Setup configuration for the Git Content Source.
"""

from setuptools import setup, find_packages
from pathlib import Path

README = Path(__file__).parent / "README.md"
long_description = README.read_text() if README.exists() else ""

setup(
    name="git-content-source",
    version="1.0.0",
    description="Mirror git repositories and import their files as a content graph",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Git Content Source",
    python_requires=">=3.9",
    packages=find_packages(include=["gitsource", "gitsource.*"]),
    install_requires=[
        "networkx>=3.0.0",
        "click>=8.1.0",
        "python-dotenv>=1.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gitsource=gitsource.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Version Control :: Git",
        "Topic :: Text Processing :: Markup",
    ],
)
