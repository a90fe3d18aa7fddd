"""
Ads Decision Gate

Spreadsheet ingestion of seller/platform e-commerce facts and a rule-based
gate deciding whether ads should run per product, platform and seller.
"""

__version__ = "1.0.0"
