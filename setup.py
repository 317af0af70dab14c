from setuptools import setup, find_packages

setup(
    name="smarthome-cli",
    version="0.1.0",
    packages=find_packages(include=["smarthome_cli", "smarthome_cli.*"]),
    include_package_data=True,
    install_requires=[
        "typer",
        "typing_extensions",
        "PyYAML",
        "jsonschema",
        "urllib3>=2",
        "truststore",
        "packaging",
        "prompt_toolkit>=3",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "smarthome=smarthome_cli.cli.main:app",
        ],
    },
    description="Manage Smarthome Homescripts and switches from the command line",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
