from setuptools import setup, find_packages

setup(
    name="api-e2e-harness",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pytest",
        "httpx>=0.27",
        "pydantic>=2.5",
        "structlog",
        "python-dotenv",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest-asyncio",
            "pytest-httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "run-tests=e2e_harness.cli:run",
        ],
    },
    description="Scaffolding for end-to-end tests against HTTP APIs.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Framework :: Pytest",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
