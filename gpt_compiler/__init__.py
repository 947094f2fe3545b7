"""
GPT Compiler - compile English instruction documents (.gpt) to code
"""

__version__ = "1.0.0"
