"""
Core modules for menugen.

This package contains the generation pipeline: language detection,
exclusion, ingredient normalization, nutrition, allergens, cost
governance and batch orchestration.
"""
