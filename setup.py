"""stac_fastapi: CMR module."""

from setuptools import find_namespace_packages, setup

with open("README.md") as f:
    desc = f.read()

install_requires = [
    "fastapi>=0.109.0,<0.137.0",
    "attrs>=23.2.0",
    "pydantic>=2.4.1,<3.0.0",
    "pydantic-settings>=2.0.0",
    "stac_pydantic~=3.3.0",
    "stac-fastapi.types==6.0.0",
    "stac-fastapi.api==6.0.0",
    "stac-fastapi.extensions==6.0.0",
    "orjson>=3.9.0",
    "overrides~=7.4.0",
    "geojson-pydantic~=1.0.0",
    "httpx>=0.24.0,<0.28.0",
    "uvicorn>=0.23.0",
    "starlette>=0.35.0",
]

extra_reqs = {
    "dev": [
        "pytest>=7.0.0",
        "pytest-cov>=4.0.0",
        "pytest-asyncio>=0.21.0,<0.24.0",
        "pre-commit~=3.0.0",
    ],
    "server": ["uvicorn[standard]>=0.23.0"],
}

setup(
    name="stac_fastapi_cmr",
    description="An implementation of STAC API based on the FastAPI framework over NASA's Common Metadata Repository.",
    long_description=desc,
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    classifiers=[
        "Intended Audience :: Developers",
        "Intended Audience :: Information Technology",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: MIT License",
    ],
    license="MIT",
    packages=find_namespace_packages(
        include=["stac_fastapi.cmr", "stac_fastapi.cmr.*"],
        exclude=["tests", "scripts"],
    ),
    zip_safe=False,
    install_requires=install_requires,
    tests_require=extra_reqs["dev"],
    extras_require=extra_reqs,
    entry_points={"console_scripts": ["stac-fastapi-cmr=stac_fastapi.cmr.app:run"]},
)
