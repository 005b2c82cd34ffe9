"""
Services: lazy dataset loading and BAM read coverage.
"""
