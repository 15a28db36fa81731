from setuptools import setup, find_packages


setup(name='bezsurf',
      version='0.1.0',
      description='Surfaces of cubic Bezier patches: subdivision, topology '
                  'checks and volume/moment integrals',
      author='Stefan Endres, Lutz Mädler',
      author_email='s.endres@iwt-uni-bremen.de',
      license='MIT',
      packages=find_packages(include=['bezsurf', 'bezsurf.*']),
      install_requires=[
          'scipy',
          'numpy',
           ],
      extras_require={
          'test': ['pytest'],
      },
      long_description='None',
      long_description_content_type='text/markdown',
      keywords='geometry bezier surface integration',
      classifiers=[
          # How mature is this project? Common values are
          #   3 - Alpha
          #   4 - Beta
          #   5 - Production/Stable
          'Development Status :: 3 - Alpha',

          # Indicate who your project is intended for
          'Intended Audience :: Science/Research',
          'Intended Audience :: Developers',
          'Topic :: Scientific/Engineering',
          'Topic :: Scientific/Engineering :: Mathematics',

          # Pick your license as you wish (should match "license" above)
          'License :: OSI Approved :: MIT License',

          'Programming Language :: Python :: 3.9',
      ],
      zip_safe=False)
