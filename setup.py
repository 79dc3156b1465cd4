"""Set-up file for fracflow for installations using ``pip install .``"""
from setuptools import find_packages, setup


with open("requirements.txt") as f:
    required = f.read().splitlines()

with open("requirements-dev.txt") as f:
    required_dev = f.read().splitlines()


setup(
    name="fracflow",
    version="0.3.0",
    license="GPL",
    keywords=["porous media two-phase flow fractures control volume finite element"],
    install_requires=required,
    extras_require={"testing": required_dev},
    description="IMPES simulator for two-phase flow in fractured porous media",
    platforms=["Linux", "Windows", "Mac OS-X"],
    packages=find_packages("src"),
    package_dir={"": "src"},
    entry_points={"console_scripts": ["fracflow = fracflow.driver:main"]},
    zip_safe=False,
)
