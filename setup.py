from setuptools import setup, find_packages

setup(
    name="timbersim",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "scikit-learn",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest"],
    },
    description="Simulation of correlated sawn-timber properties via conditional multivariate-normal sampling",
)
