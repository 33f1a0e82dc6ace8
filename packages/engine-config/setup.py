from setuptools import setup, find_packages

setup(
    name="engine-config",
    version="1.0.0",
    author="Recall Rebalancer Team",
    description="Application configuration models and YAML loader",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "engine_config": ["py.typed"],
    },
    install_requires=[
        "pydantic>=2.11.7",
        "PyYAML>=6.0.2",
    ],
    python_requires=">=3.11",
)
