"""\
HAL and JSON:API hypermedia documents, and discovery of hypermedia APIs.
"""

import setuptools

NAME = 'kt.hypermedia'
VERSION = '0.1.0'


metadata = dict(
    name=NAME,
    version=VERSION,
    author='Keeper Technology, LLC',
    author_email='info@keepertech.com',
    url=f'http://kt-git.keepertech.com/DevTools/{NAME}',
    description=__doc__.strip(),
    packages=setuptools.find_namespace_packages('src', include=['kt.*']),
    package_dir={'': 'src'},
    include_package_data=True,
    python_requires='>=3.9',
    install_requires=[
        'Flask>=2.2',
        'Werkzeug',
        'zope.component',
        'zope.interface',
        'zope.schema',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)


if __name__ == '__main__':
    setuptools.setup(**metadata)
