"""
Cross-DEX Arbitrage Engine.

An asynchronous engine that watches decentralized-exchange trading pairs
for swap activity and searches the resulting rate graph for profitable
trade loops.
"""

__version__ = "1.0.0"
__author__ = "Tim"
