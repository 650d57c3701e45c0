from setuptools import setup, find_packages
import os

if os.path.exists("src/wasmenv/version.txt"):
    with open("src/wasmenv/version.txt") as f:
        version = f.read().strip()
else:
    version = "0.0.1"

setup(
    name="wasmenv",
    version=version,
    description="Static discovery of the environment variables a WebAssembly module reads",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={"wasmenv": ["version.txt"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "art",
        "click",
        "coloredlogs",
        "jsonschema",
        "pydantic>=2",
        "pyyaml",
        "yamlcore",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "wasmenv=wasmenv.__main__:main",
            "wasmenv-config=wasmenv.gen_config:main",
        ],
    },
)
