from __future__ import annotations

# s3perf - S3 upload/download throughput benchmark
"""
Usage:
    python -m s3perf run --bucket-name mybucket --num-threads 8
    python -m s3perf run --stage download --count 3
    python -m s3perf cleanup --prefix obj/
"""

__version__ = "1.0.0"
