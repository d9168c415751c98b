from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent

# Read requirements (ignore comments and recursive -r entries)
req_path = ROOT / "requirements.txt"
requirements = []
if req_path.exists():
    for line in req_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-r"):
            continue
        requirements.append(line)

readme = (ROOT / "README.md").read_text(encoding="utf-8") if (ROOT / "README.md").exists() else ""

setup(
    name="smart-irrigation-bridge",
    version="1.0.0",
    description="MQTT to Socket.IO bridge and auto-irrigation controller for a smart watering device",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(include=("irrigation", "irrigation.*", "infrastructure", "infrastructure.*")),
    py_modules=["irrigation_app"],
    python_requires=">=3.10,<4",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Agriculture",
        "Topic :: Home Automation",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    keywords="iot irrigation smart-farming esp32 mqtt socketio automation",
    entry_points={
        "console_scripts": [
            "irrigation-bridge=irrigation_app:main",
        ]
    },
    include_package_data=True,
    package_data={
        "irrigation": ["data/*.json"],
    },
)
