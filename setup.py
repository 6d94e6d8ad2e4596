from setuptools import setup, find_packages

setup(
    name="docgate",
    version="0.1.0",
    packages=find_packages(include=["docgate", "docgate.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic>=2",
        "pydantic-settings>=2",
    ],
    extras_require={
        "http2": ["httpx[http2]"],
        "server": ["uvicorn"],
        "test": ["pytest"],
    },
)
