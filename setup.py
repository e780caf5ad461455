"""
Setup script for the ATS resume scoring service.
Run: pip install -e ".[test]"
"""
from setuptools import setup

setup(
    name="ats-resume-scorer",
    version="0.1.0",
    description="Deterministic ATS compatibility scoring for structured resumes",
    python_requires=">=3.9",
    py_modules=[
        "app",
        "exceptions",
        "keywords",
        "models",
        "scorer",
        "usage",
        "validators",
    ],
    install_requires=[
        "flask>=3.0",
        "pydantic>=2.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
)
