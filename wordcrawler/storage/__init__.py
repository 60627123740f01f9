"""
Aggregation layer for the word frequency crawler.
"""

from .word_tally import WordTally, RankedEntry

__all__ = ['WordTally', 'RankedEntry']
