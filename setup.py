# setup.py
"""
Python package configuration for traffical-sdk

Builds and installs the client SDK (traffical_sdk) and the `traffical` CLI.

Key points:
- Package versioning (bundle and event payloads are stable within a major)
- Dependency management (libraries needed at runtime vs. for development)
- File inclusion (config and skill templates get bundled with the package)
"""

from setuptools import setup, find_packages
import os

def read_readme():
    current_dir = os.path.abspath(os.path.dirname(__file__))
    readme_path = os.path.join(current_dir, "README.md")
    if os.path.exists(readme_path):
        with open(readme_path, "r", encoding="utf-8") as f:
            return f.read()
    return "Python client SDK and CLI for Traffical parameters"

setup(
    name="traffical-sdk",

    # Keep in sync with traffical_sdk.__version__
    version="0.3.0",

    author="Traffical SDK Team",
    description="Python client SDK and CLI for Traffical parameters",
    long_description=read_readme(),
    long_description_content_type="text/markdown",

    packages=find_packages(exclude=["tests", "tests.*"]),

    # Non-Python files: the starter config and the agent skill document
    include_package_data=True,
    package_data={
        'traffical_sdk': [
            'templates/*.yaml',
            'templates/*.md',
        ]
    },

    python_requires=">=3.9",

    install_requires=[
        "pyyaml>=6.0",        # config.yaml and credentials parsing
        "pydantic>=2.11",     # config file and bundle validation
        "httpx>=0.24",        # bundle fetch, event delivery, management API
    ],

    # Install with: pip install -e ".[dev]"
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "respx>=0.20.0",      # httpx mocking
            "black>=22.0.0",      # Code formatting
            "flake8>=4.0.0",      # Linting
            "mypy>=0.950",        # Type checking
            "types-PyYAML",
        ]
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    entry_points={
        'console_scripts': [
            'traffical=traffical_sdk.cli:main',
        ],
    },
)
