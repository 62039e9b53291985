"""
ST Bot Dispatcher build configuration

Usage:
    pip install -e .            # Runtime dependencies
    pip install -e ".[test]"    # Plus the test toolchain
"""

from setuptools import setup, find_namespace_packages

setup(
    name="st-dispatch",
    version="0.1.0",
    description="Intent dispatch bot with encrypted per-user session summaries",
    packages=find_namespace_packages(include=["src", "src.*"]),
    install_requires=[
        "aiosqlite>=0.19",
        "cryptography>=41.0",
        "fastapi>=0.110",
        "httpx>=0.27",
        "loguru>=0.7",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    python_requires=">=3.11",
)
