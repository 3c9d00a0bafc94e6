"""Rank fusion.

Contents
- ``fusion``: Reciprocal Rank Fusion over several ranked lists
"""
