"""
depwatch - Dependency Version Checking

Checks declared dependencies against a package registry with a TTL cache,
pluggable eviction, retries with backoff and bounded concurrency.
"""

import os
import re
from setuptools import setup, find_packages

# Read the README for the long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Get package version
with open(os.path.join("depwatch", "__init__.py"), "r", encoding="utf-8") as f:
    version_match = re.search(r'^__version__ = ["\']([^\"\']+)[\"\']', f.read(), re.MULTILINE)
    if version_match:
        VERSION = version_match.group(1)
    else:
        raise RuntimeError("Unable to find version string in depwatch/__init__.py")

# Core dependencies
install_requires = [
    "attrs>=22.2.0",
    "pydantic>=2.0.0,<3.0.0",
    "tqdm>=4.0.0",
    "aiohttp>=3.8.0",
    "orjson>=3.6.0",
    "semver>=3.0.0",
]

# Optional dependencies
extras_require = {
    # Development and testing
    "dev": [
        "pytest>=7.0.0",
        "pytest-asyncio>=0.20.0",
        "pytest-cov>=4.0.0",
        "black>=22.0.0",
        "isort>=5.0.0",
        "mypy>=0.990",
    ],
}

setup(
    name="depwatch",
    version=VERSION,
    author="depwatch contributors",
    description="Dependency version checking with caching, retries and bounded concurrency",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    package_data={
        "depwatch": ["py.typed"],
    },
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development",
        "Topic :: Software Development :: Build Tools",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Typing :: Typed",
    ],
    keywords=[
        "dependencies",
        "npm",
        "registry",
        "semver",
        "outdated",
        "cache",
    ],
    zip_safe=False,
)
