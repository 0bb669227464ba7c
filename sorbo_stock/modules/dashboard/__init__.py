from .summary import top_selling, least_selling, sales_summary, present_types

__all__ = ["top_selling", "least_selling", "sales_summary", "present_types"]
