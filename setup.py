# Lib
from setuptools import setup, find_packages
exec(open('methylqc/version.py').read())

test_requirements = [
    'pytest',
    'pytest_mock',
    'pyarrow', # parquet exports
    'coverage'
]

setup(
    name='methylqc',
    version=__version__,
    description='Quality control and normalization for Illumina methylation array intensity matrices',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.8',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
        'Topic :: Scientific/Engineering :: Medical Science Apps.',
        'Framework :: Jupyter',
        'Intended Audience :: Science/Research',
        'Operating System :: MacOS :: MacOS X',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: POSIX :: Linux',
      ],
    keywords='methylation dna data processing epigenetics illumina epic quality control',
    license='MIT',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=[
        'numpy',
        'pandas >=1.3.0',
        'scipy',
        'statsmodels',
        'tqdm',
    ],
    extras_require={
        'dev': test_requirements
    },
    tests_require= test_requirements,
)
