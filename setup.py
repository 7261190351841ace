from setuptools import setup, find_packages

setup(
    name="ai-chart",
    version="0.1.0",
    packages=find_packages(exclude=['tests', 'tests.*', 'scripts', 'cache', '.pytest_cache']),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "openpyxl>=3.1.0",
        "xlrd>=2.0.1",
        "pydantic>=2.0.0",
        "openai>=1.0.0,<3",
        "python-dotenv>=1.0.0",
        "fastapi>=0.109.0",
        "uvicorn>=0.27.0",
        "python-multipart>=0.0.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
            "httpx>=0.24.0",
            "respx>=0.20.0",
        ],
    },
    python_requires=">=3.10",
)
