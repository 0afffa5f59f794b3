"""Setup script for record-desktop."""

from setuptools import setup, find_packages

setup(
    name="record-desktop",
    version="1.0.0",
    description="Tray gallery for screenshots and screen recordings",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    author="record-desktop contributors",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "watchdog>=3.0.0",
        "pystray>=0.19.0",
        "Pillow>=10.0.0",
        "requests>=2.31.0",
        "pyperclip>=1.8.2",
    ],
    extras_require={
        # No manylinux wheels on PyPI
        "gui": [
            "wxPython>=4.2.1",
        ],
        "test": [
            "pytest>=7.4",
        ],
    },
    entry_points={
        "gui_scripts": [
            "record-desktop=record_desktop.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: MacOS X",
        "Environment :: Win32 (MS Windows)",
        "Environment :: X11 Applications",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: MacOS :: MacOS X",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Graphics :: Capture :: Screen Capture",
    ],
)
