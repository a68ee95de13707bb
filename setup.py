from setuptools import setup, find_packages

setup(
    name="extresolver",
    version="0.9",
    description="Minimal free resolutions and Ext groups over the Steenrod algebra",
    long_description=("Computes minimal free resolutions of finite dimensional modules over the mod p Steenrod algebra "
                      "in the Milnor and Adem bases, with concurrent computation, checkpoints, Yoneda products and "
                      "Massey products"),
    long_description_content_type="text/plain",
    license="Apache License 2.0",
    python_requires=">=3.7",
    package_data={"extresolver": ["steenrod_modules/*.json"]},
    packages=find_packages(include=["extresolver", "extresolver.*"]),
    install_requires=["numpy", "scipy", "psutil"],
    extras_require={"test": ["pytest", "pytest-timeout"]},
    classifiers=[
        "Intended Audience :: Science/Research", "Development Status :: 3 - Alpha", "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10", "Programming Language :: Python :: 3.11", "Programming Language :: Python :: 3.12",
        "Natural Language :: English", "Operating System :: OS Independent", "Topic :: Scientific/Engineering :: Mathematics"
    ],
    keywords=["algebraic topology", "steenrod algebra", "ext", "minimal resolution"],
    zip_safe=False,
)
