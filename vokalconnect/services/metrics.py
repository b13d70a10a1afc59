from __future__ import annotations


METRIC_TYPES = ("TEXT", "NUMBER", "BOOLEAN", "SELECT")

DEFAULT_INDUSTRY = "Technology"

# Static reference values until per-industry data is sourced properly.
INDUSTRY_BENCHMARKS: dict[str, dict[str, str]] = {
    "Technology": {
        "Monthly Revenue": "$100,000",
        "Customer Acquisition Cost": "$50",
        "Churn Rate": "5%",
        "Customer Lifetime Value": "$2,000",
        "Website Conversion Rate": "2.5%",
    },
    "Retail": {
        "Monthly Revenue": "$50,000",
        "Customer Acquisition Cost": "$25",
        "Churn Rate": "3%",
        "Customer Lifetime Value": "$1,000",
        "Website Conversion Rate": "3%",
    },
    "Professional Services": {
        "Monthly Revenue": "$75,000",
        "Customer Acquisition Cost": "$100",
        "Churn Rate": "2%",
        "Customer Lifetime Value": "$5,000",
        "Website Conversion Rate": "4%",
    },
}


def normalize_metric_type(metric_type: str) -> str:
    normalized = metric_type.strip().upper()
    if normalized not in METRIC_TYPES:
        raise ValueError(f"Unsupported metric type: {metric_type}")
    return normalized


def benchmark_for(industry: str | None, metric_name: str) -> str | None:
    table = INDUSTRY_BENCHMARKS.get(industry or DEFAULT_INDUSTRY)
    if table is None:
        return None
    return table.get(metric_name)
