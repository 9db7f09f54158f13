"""
Property-based tests for PaperForm parsing and validation.

This package contains Hypothesis-based property tests that verify
invariants of the compliance engine across random form data.
"""
