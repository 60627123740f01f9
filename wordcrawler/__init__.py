"""
Word Frequency Crawler

A bounded-concurrency web crawler that counts the words on every page it can
reach from a set of seed URLs without leaving their hosts.
"""

__version__ = "1.0.0"
__description__ = "A concurrent same-host web crawler that ranks the most recurring words"
