from setuptools import setup


setup(
    name="perf-importer",
    version="0.1.0",
    description="Import messy ad-platform performance exports into canonical monthly client reports",
    packages=["perf_importer"],
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
        "requests",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
    },
    entry_points={
        "console_scripts": [
            "perf-importer=perf_importer.cli:main",
        ]
    },
)
