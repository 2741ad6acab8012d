"""
passvault -- a pass(1)-compatible password store, seen as a tree.

Secrets are GPG-encrypted files under one directory. Directories group
them. Every change is committed when the store is a git repository.
"""

__version__ = "0.1.0"
__author__ = "passvault contributors"
