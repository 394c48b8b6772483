"""Setup configuration for the Modguard Discord bot."""

from setuptools import setup, find_packages

setup(
    name="modguard",
    version="0.1.0",
    description="A Discord moderation bot with spam, banned term and AI rule checks",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "openai>=1.40",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "jsonschema>=4.0",
        "aiofiles>=23.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "modguard=modguard.main:main",
        ],
    },
)
