"""
Command-line drivers for the read benchmark.
"""
