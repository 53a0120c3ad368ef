"""Matching package.

Similarity scoring, the single-page match finder, the unattended category
batch matcher and the category page processor.
"""
