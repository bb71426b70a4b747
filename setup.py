from setuptools import setup

version = '0.1'

with open("README.md", "r", encoding="utf-8") as f:
    long_descr = f.read()

setup(
    name='pystealthtech',
    packages=['pystealthtech'],
    version=version,
    license='Apache 2.0',
    description='Control a Lovesac StealthTech sound bar over Bluetooth LE',
    long_description=long_descr,
    long_description_content_type='text/markdown',
    author='johnno',
    author_email='johnno@example.com',
    url='https://github.com/johnno/pystealthtech',
    download_url=f'https://github.com/johnno/pystealthtech/archive/{version}.tar.gz',
    keywords=['Lovesac', 'StealthTech', 'Sound Bar', 'BLE'],
    python_requires='>=3.10',
    install_requires=[
        "bleak>=0.21.0",
        "bleak-retry-connector>=3.4.0"
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23"
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Topic :: Home Automation',
        'License :: OSI Approved :: Apache Software License',
        'Programming Language :: Python :: 3.10'
    ],
)
