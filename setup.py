from setuptools import setup, find_packages

setup(
    name='amzscraper',
    version='1.0.0',
    description='Resumable Amazon order and invoice downloader',
    packages=find_packages(),
    include_package_data=True,
    install_requires=[
        'selenium',
        'webdriver-manager',
        'beautifulsoup4',
        'lxml',
        'python-dotenv',
        'requests',
        'psutil',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'amzscraper=amzscraper.__main__:main',
        ],
    },
    python_requires='>=3.8',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
