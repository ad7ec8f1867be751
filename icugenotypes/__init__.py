# File: icugenotypes/__init__.py
# Location: icugenotypes/icugenotypes/__init__.py

"""
icugenotypes Package.

This package provides modules for loading ICU patient and control genotype
tables, computing genotype and allele frequencies, running the association
and clinical tests of the study, and rendering the resulting tables and figures.
"""

from .version import __version__
