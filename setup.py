"""
Setup script for docsearch: hybrid document search and ranking engine
"""

from setuptools import setup, find_packages

setup(
    name="docsearch",
    version="1.0.0",
    description="Hybrid lexical and semantic document search and ranking engine",
    long_description="Hybrid document search engine combining an inverted index with keyword concept vectors, query enhancement, fused relevance scoring and per-user personalization",
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests*", "docs*", "examples*"]),
    python_requires=">=3.9",
    install_requires=[
        # Core dependencies
        "pydantic>=2.11.0",
        "pydantic-settings>=2.0.0",
        "google-generativeai>=0.8.5",
        "python-dotenv>=1.0.0",

        # Text processing
        "nltk>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=1.0.0",
            "flake8>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "docsearch=docsearch.__main__:main",
        ],
    },
    author="DocSearch Team",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Text Processing :: Indexing",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="search information-retrieval ranking inverted-index semantic-search",
)
