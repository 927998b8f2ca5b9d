from setuptools import setup, find_packages

setup(
    name="pattern-contracts",
    version="0.1.0",
    packages=find_packages(include=["pattern_contracts", "pattern_contracts.*"]),
    package_data={"pattern_contracts": ["schemas/*.json"]},
    install_requires=[
        "jsonschema>=4.20.0",
    ],
)
