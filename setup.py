from setuptools import setup, find_packages

setup(
    name="exa-websets-mcp",
    version="0.4.0",
    packages=find_packages(include=["exa_websets", "exa_websets.*"]),
    python_requires=">=3.11",
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "mcp>=1.9,<2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "exa-websets-mcp=exa_websets.app.main:main",
        ],
    },
)
