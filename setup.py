#!/usr/bin/env python

from setuptools import find_packages, setup

setup(
    name="bucketfs",
    version="0.1.0",
    description="An S3 bucket presented as a hierarchical filesystem",
    packages=find_packages(include=["bucketfs", "bucketfs.*"]),
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.11",
    keywords=["S3", "filesystem", "object storage"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: System :: Filesystems",
    ],
    install_requires=[
        "elasticsearch~=8.6",
        "minio>=7.2",
        "urllib3",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings>=2.7",
    ],
    extras_require={
        "dev": [
            "pytest",
            "mypy",
            "flake8",
            "requests",
        ]
    },
    entry_points={
        "console_scripts": [
            "bucketfs = bucketfs.__main__:main"
        ]
    },
)
