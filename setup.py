from setuptools import setup, find_packages

with open('requirements.txt') as f:
    install_requires = f.read().splitlines()

with open('README.md', 'r', encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='online-moments',
    version='0.1.0',
    description='On-line estimation of the mean and variance of multi-dimensional samples',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(include=['online_moments', 'online_moments.*']),
    install_requires=install_requires,
    extras_require={
        'test': ['pytest'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    license='MIT',
    python_requires='>=3.12',
)
