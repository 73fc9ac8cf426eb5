"""
FHEVM SDK Setup Configuration
"""
from pathlib import Path

from setuptools import setup, find_packages

setup(
    name="fhevm-sdk",
    version="1.0.0",
    packages=find_packages(include=["fhevm_sdk", "fhevm_sdk.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.7.4",
        "pydantic-settings>=2.0.0",
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "hexbytes>=1.2.0",
        "httpx>=0.25.0",
        "backoff>=2.2.1",
        "python-json-logger>=2.0.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    author="FHEVM SDK Team",
    description="Client-side encrypted inputs and authorized decryption for confidential smart contracts",
    long_description=open("README.md").read() if Path("README.md").exists() else "",
    long_description_content_type="text/markdown",
)
