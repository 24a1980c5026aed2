from setuptools import setup

setup(
    name='pybedload',
    version='0.1.0',
    description='Loading of genomic BED features and reads with ambiguity resolution',
    install_requires=['pandas', 'numpy'],
    extras_require={
        'test': ['pytest'],
        'progress': ['tqdm'],
    },
    packages=['pybedload'],
    python_requires='>=3.10',
    zip_safe=False
)
