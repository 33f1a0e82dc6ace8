from setuptools import setup, find_packages

setup(
    name="rebalance-calculator",
    version="1.0.0",
    author="Recall Rebalancer Team",
    description="Chain-agnostic allocation analysis, consolidation planning and trade splitting",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "rebalance_calculator": ["py.typed"],
    },
    install_requires=[
        "pydantic>=2.11.7",
        "chain-connector-base==1.0.0",
        "engine-config==1.0.0",
    ],
    python_requires=">=3.11",
)
