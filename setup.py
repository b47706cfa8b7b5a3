"""
Setup script for the job-board project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="job-board",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["version"],
    include_package_data=True,
    package_data={"frontend": ["templates/*.html", "templates/partials/*.html"]},
    python_requires=">=3.11",
    install_requires=[
        "flask>=3.0",
        "pymongo>=4.6",
        "python-dotenv>=1.0",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
)
