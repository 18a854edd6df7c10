from setuptools import setup, find_packages

setup(
    name="contribution-allocator",
    version="1.0.0",
    author="Contribution Allocator Team",
    description="Contribution allocation recommendation engine for real-estate fund portfolios",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "contribution_allocator": ["py.typed"],
        "allocator_config": ["py.typed"],
    },
    install_requires=[
        "pydantic==2.11.7",
        "PyYAML==6.0.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "contribution-allocator=contribution_allocator.__main__:main",
        ],
    },
    python_requires=">=3.11",
)
