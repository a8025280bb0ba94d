from setuptools import setup, find_packages

setup(
    name="audiogist",
    version="1.0.0",
    packages=find_packages(include=["audiogist", "audiogist.*"]),
    py_modules=["main"],
    install_requires=[
        "openai>=1.0.0",
        "aiohttp>=3.8.0,<3.14",
        "aiofiles>=0.8.0",
        "pydub>=0.25.0",
        "audioop-lts>=0.2.1; python_version>='3.13'",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "pytest-timeout>=2.1.0",
            "pytest-mock>=3.10.0",
            "pytest-xdist>=3.0.0",
            "faker>=18.0.0",
            "aioresponses>=0.7.4",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "audiogist=main:main",
        ],
    },
    python_requires=">=3.10",
)
