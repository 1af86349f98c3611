from setuptools import setup, find_packages

setup(
    name="odbc_tools",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        'click==8.1.8',
        'fastavro==1.10.0',
        'pyodbc==5.2.0',
        'rich==13.9.4',
    ],
    extras_require={
        'test': [
            'pytest==8.3.4',
        ],
    },
    entry_points={
        'console_scripts': [
            'odbc-tools=odbc_tools.main:main',
        ],
    },
)
