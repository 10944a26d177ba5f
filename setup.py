from setuptools import setup, find_namespace_packages

setup(
    name="tutorgate",
    version="0.1.0",
    packages=find_namespace_packages(include=["tutorgate", "tutorgate.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "httpx>=0.27",
        "openai>=1.30",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
