"""
Run the full pipeline
=====================
Compiles every competitor search JSON into the entity graph and writes
the static lookup artifacts.

Usage:
    python scripts/run_pipeline.py

Locations come from the environment (or .env):
    COMPETITOR_SEARCH_DIR   ./competitor_searches   one JSON per company and year
    FINANCIALS_FILE         ./competitor_financials.json   optional
    OUTPUT_DIR              ./data                  index.json, public.json, entities/
    LEGACY_BUNDLE_FILE      ./data.js               combined legacy bundle
"""

import sys
import os
import logging

# Add project root to path
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
sys.path.insert(0, project_root)

from rivalgraph.core.config import settings
from rivalgraph.pipeline import Pipeline

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(levelname)s - %(name)s - %(message)s",
)


def main() -> None:
    pipeline = Pipeline()

    print(f"\n{'='*60}")
    print("  COMPETITOR GRAPH COMPILATION")
    print(f"  Searches:   {pipeline.search_dir}")
    print(f"  Financials: {pipeline.financials_path}")
    print(f"  Output:     {pipeline.output_dir}  +  {pipeline.bundle_path}")
    print(f"{'='*60}\n")

    summary = pipeline.run()

    print(f"\n{'='*60}")
    print("COMPILATION RESULTS")
    print(f"{'='*60}")
    print(f"  - {summary['publicCompanies']} public companies")
    print(f"  - {summary['privateEntities']} private/other entities")
    print(f"  - {summary['companies']} classified as companies")
    print(f"  - {summary['products']} classified as products")
    print(f"  - {summary['withFinancials']} with financial data")
    print(f"  - {summary['totalRelationships']} relationships")
    print(f"  - {summary['duplicatesRemoved']} duplicate entities merged")
    print(f"\n  {summary['entityFiles']} entity files written.")
    print(f"{'='*60}\n")


if __name__ == "__main__":
    main()
