"""Pseudonym derivation, anonymous aliases, and privileged re-identification.

- ``pseudonym``: per-account one-way pseudonym tokens
- ``aliases``: display aliases drawn from a fixed pool
- ``resolver``: verified pseudonym -> account resolution for moderators
"""
