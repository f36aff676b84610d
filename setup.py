"""Setup configuration for the Warden automod bot."""

from setuptools import setup, find_packages

setup(
    name="warden",
    version="0.1.0",
    description="A rule-based automod bot for Discord",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "aiosqlite",
        "PyYAML",
        "prompt_toolkit",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "warden=warden.main:main",
        ],
    },
)
