"""
flowgraph - Setup Configuration

Graph traversal, branch validation and result caching for agent flows
made of start, end, agent, conditional and data-store nodes.

License: Apache-2.0
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Core dependencies
core_deps = [
    # Snapshot and diagnostic models
    "pydantic>=2.11.9",
    # Logging
    "python-json-logger>=2.0.7",  # v2.x (v3 requires testing)
]

# Development dependencies
dev_deps = [
    # Testing
    "pytest>=8.4.1",
    "pytest-asyncio>=1.0.0",
    "pytest-mock>=3.14.1",
    "pytest-cov>=6.2.1",
    # Code quality
    "black>=25.0.0",
    "flake8>=7.1.0",
    "mypy>=1.13.0",
]

setup(
    name="flowgraph",
    version="0.1.0",

    # Package description
    description="Reachability analysis, branch validation and caching for agent flow graphs",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.11",

    # Dependencies
    install_requires=core_deps,

    # Optional dependencies (extras)
    extras_require={
        "test": dev_deps[:4],
        "dev": dev_deps,
    },

    # PyPI classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Framework :: AsyncIO",
    ],

    keywords=[
        "flow", "graph", "reachability", "workflow", "agents",
        "validation", "cache",
    ],

    # License
    license="Apache-2.0",

    include_package_data=True,
    zip_safe=False,
)
