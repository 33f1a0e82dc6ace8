from setuptools import setup, find_packages

setup(
    name="chain-connector-base",
    version="1.0.0",
    author="Recall Rebalancer Team",
    description="Data model, token registry and abstract providers for chain connectors",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "chain_connector_base": ["py.typed"],
    },
    install_requires=[
        "pydantic>=2.11.7",
    ],
    python_requires=">=3.11",
)
