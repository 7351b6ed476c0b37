# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- STATE & CONFIG ---
    "pydantic>=2.0.0",
    "pyyaml>=6.0.0",
    "python-dotenv>=1.0.0",

    # --- TRANSPORT ---
    "httpx>=0.27.0",
]

extras_require = {
    # --- TESTS---
    "test": [
        "pytest-asyncio==1.3.0",
        "pytest",
    ],
}

setup(
    name="datamanager",
    version="1.0.0",
    description="Data manager state layer: paginated record stores and app orchestration",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.11",
)
