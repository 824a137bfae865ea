from setuptools import setup, find_packages

setup(
    name="save_runner",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "tqdm>=4.60",
        # Unified diff parsing
        "unidiff>=0.7",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "save-runner=save_runner.cli:main",
        ],
    },
    description="Turn text transformations and unified diffs into minimal line edits.",
)
