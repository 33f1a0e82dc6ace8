from setuptools import setup, find_packages

setup(
    name="recall-connector",
    version="1.0.0",
    author="Recall Rebalancer Team",
    description="Recall Network connector and iterative rebalancer implementation",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "recall_connector": ["py.typed"],
    },
    install_requires=[
        "chain-connector-base==1.0.0",
        "rebalance-calculator==1.0.0",
        "engine-config==1.0.0",
        "pydantic>=2.11.7",
        "aiohttp>=3.12.15",
        "PyYAML>=6.0.2",
    ],
    python_requires=">=3.11",
)
