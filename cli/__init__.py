"""
Console output for B+ Tree dumps.
"""
