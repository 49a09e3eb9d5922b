"""Table Roller - Markdown 随机表格骰点"""

__version__ = "0.3.0"
