# setup.py
from setuptools import setup, find_packages

setup(
    name="media_scout",
    version="0.1.0",
    description="Media discovery stage for an archival web crawler",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.9",
        "click>=8.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "warcio>=1.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "media-scout=media_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
