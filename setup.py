from setuptools import find_packages, setup

setup(
    name="filetailer",
    version="1.0.0",
    author="filetailer contributors",
    description="filetailer - follow a CRLF-delimited file across rotation",
    long_description="filetailer tails a single file, survives delete/recreate, rename-swap "
                     "and truncate-and-reopen rotation, and yields each line exactly once.",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "aiofiles>=23.1",
        "watchdog>=5.0",
        "requests>=2.25",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "filetailer=filetailer.cli:main",
        ],
    },
)
