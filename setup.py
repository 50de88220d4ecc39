from setuptools import setup

setup(
    name='navdt',
    version='0.1',
    packages=['navdt', 'navdt.grid', 'navdt.spatial'],
    install_requires=['numpy', 'scipy'],
    extras_require={'test':['pytest']},
    license='MIT',
    description="Dynamic constrained Delaunay triangulation for navigation meshes",
    long_description=open('README.md').read(),
)
