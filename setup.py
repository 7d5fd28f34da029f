from setuptools import find_packages, setup

setup(
    name='frontdoorwaf',
    version='0.1',
    py_modules=['frontdoorwaf'],
    packages=find_packages(include=['wafpolicy', 'wafpolicy.*']),
    install_requires=[
        'Click',
        'python-hcl2',
        'GitPython',
        'ipaddr',
        'PyYAML',
        'requests',
        'tqdm'
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points='''
        [console_scripts]
        frontdoorwaf=frontdoorwaf:cli
    ''',
)
