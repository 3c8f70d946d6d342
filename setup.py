from setuptools import setup, find_packages

setup(
    name="jsonl_export",
    version="1.0.0",
    description="Concurrent export of MySQL and Oracle tables to JSON Lines files",
    author="Data Engineering Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "oracledb>=2.0.0",
        "PyMySQL>=1.1.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "PyYAML>=6.0",
        "psutil>=5.9.0",
        "simplejson>=3.19.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "jsonl-export=jsonl_export.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
