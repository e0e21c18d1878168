from setuptools import setup, find_packages

setup(
    name="research-gate",
    version="0.1.0",
    packages=find_packages(include=["research_gate", "research_gate.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic",
        "pydantic-settings",
        "redis",
        "starlette",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
        ],
    },
    entry_points={
        "console_scripts": [
            "analyze-recommendations=research_gate.app.services.recommendation_report:main",
        ],
    },
)
