"""
BizDoc - rule-based business document analysis.

Turns extracted document text into a structured financial analysis:
entities, amounts, KPIs, health scores, risks, actions, and charts.
"""

__version__ = "0.1.0"
