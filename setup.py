"""
Setup script for the Law Firm Practice Manager
"""
from setuptools import setup

setup(
    name="lawfirm-practice",
    version="1.0.0",
    description="Multi-tenant practice management core for law firms",
    author="Your Firm",
    python_requires=">=3.10",
    py_modules=[
        "config",
        "errors",
        "tenant",
        "models",
        "clients",
        "cases",
        "time_entries",
        "calendar_events",
        "documents",
        "billing",
        "firm_analytics",
        "practice",
    ],
    packages=["db", "commands"],
    install_requires=[
        "python-dateutil>=2.8.2",
        "click>=8.1.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
        "psycopg2-binary>=2.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lawfirm=practice:main",
        ],
    },
)
