from setuptools import setup, find_packages


setup(
    name='audioconvert',
    version='0.0.1+git',
    description='Batch convert lossless music files with external encoders',
    license='Apache',
    platforms='any',
    entry_points={
        'console_scripts': [
            'audioconvert=audioconvert.app:run',
        ],
    },
    packages=find_packages(exclude=('tests',)),
    package_data={
        'audioconvert': ['schema.json'],
    },
    include_package_data=True,
    install_requires=[
        'mutagen',
        'pillow',
        'ruamel.yaml',
        'jsonschema',
    ],
    python_requires='>=3.5',
    zip_safe=False,
)
