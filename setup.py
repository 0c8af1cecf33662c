from setuptools import setup, find_packages

setup(
    name="player-prop-projector",
    version="1.0.0",
    description="Ridge regression player stat projections blended with heuristic prop lines",
    packages=find_packages(include=["prop_projector", "prop_projector.*"]),
    install_requires=[
        "numpy>=1.22.4",
        "pandas>=1.5.3",
        "pytz>=2022.7",
        "scipy>=1.10.0",
        "scikit-learn>=1.3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "prop-projector=prop_projector.main:main",
        ],
    },
)
