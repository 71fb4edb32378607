from setuptools import setup, find_packages

setup(
    name="graph_spine",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "networkx>=3.2.1",
        "numpy>=1.26.4",
        "psutil",
        "tqdm",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'graph_spine=graph_spine.cli:main',
        ],
    },
    author="",
    author_email="",
    description="Assembly walks, linearization and structural-variant features for pangenome graphs",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
)
