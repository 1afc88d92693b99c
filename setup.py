from setuptools import setup, find_packages


setup(
    name="pbotools",
    version="0.1",
    packages=find_packages(include=["pbo", "pbo.*"]),
    description="Reader, writer and packer for PBO game asset archives.",
    author="vercingetorx",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "pbo=pbo.cli:main",
        ]
    },
)
