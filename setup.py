# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="rvt_ledger",
    version="0.1.0",
    description="Renewables Vault Token ledger: append-only transaction log with derived balances",
    python_requires=">=3.9",
    packages=find_namespace_packages(include=["rvt_ledger", "rvt_ledger.*"]),
    install_requires=[
        "plyvel",             # LevelDB storage
        "msgpack",            # transaction encoding
        "PyNaCl",             # ed25519 identities
        "cryptography",       # ECDSA identities
        "pycryptodome",       # keccak hashing
        "prometheus_client",  # metrics
        "psutil",             # monitoring
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "rvt-ledger=rvt_ledger.cli:main",
        ],
    },
)
