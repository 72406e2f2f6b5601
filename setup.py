from setuptools import setup, find_packages

setup(
    name="axiomforge",
    version="0.1.0",
    description="Axiomforge - converges memory signals into reinforced principles and canonical axioms",
    packages=find_packages(include=["Axiomforge", "Axiomforge.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        # Core ML/NLP
        "numpy>=1.24.0",
        "sentence-transformers>=2.2.0",

        # Network
        "requests>=2.28.0",

        # Configuration
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.20.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.20.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "axiomforge=main:main",
        ],
    },
)
