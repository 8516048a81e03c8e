from setuptools import setup, find_packages

setup(
    name="lightning-client",
    version="0.1.0",
    description="Reconnecting asyncio JSON-RPC client for the lightningd daemon",
    author="lightning-client contributors",
    packages=find_packages(include=["lightning_client", "lightning_client.*"]),
    install_requires=[
        "opentelemetry-api>=1.14.0",
        "opentelemetry-sdk>=1.14.0",
        "opentelemetry-exporter-otlp>=1.14.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
    },
    python_requires=">=3.9",
)
