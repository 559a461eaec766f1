from setuptools import setup, find_packages

setup(
    name="form-validator",
    version="0.1.0",
    description="Declarative field validation with override messages and script checks",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        'form_validator': ['default-config.yaml', 'messages.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'pyyaml>=6.0',
        'jsonschema>=4.17.0',
        'requests>=2.28.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'form-validator-jsonrpc=form_validator.jsonrpc_server:main',
        ],
    },
    python_requires='>=3.9',
)
