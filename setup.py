from setuptools import setup


setup(
    name="tessera",
    version="0.3.0",
    description="Delimited text and JSON ingestion with schema inference, validation, diffing and edit history",
    packages=["tessera"],
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "chardet",
    ],
    entry_points={
        "console_scripts": [
            "tessera=tessera.cli:main",
        ]
    },
)
