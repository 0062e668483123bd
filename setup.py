from setuptools import find_packages, setup

setup(
    name="spot_core",
    version="1.0.0",
    description="Client core for Boston Dynamics Spot services",
    packages=find_packages(include=["spot_core*"]),
    install_requires=["bosdyn-api", "grpcio", "protobuf", "inflection", "pytest"],
)
