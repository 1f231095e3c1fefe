"""
Top-level package for the Webflow → Mnemo migration utility.

This package bundles all components required to read items from Webflow
CMS collections, map them into Mnemo collection items, copy their images
to the owned bucket behind the CDN, create the items through the Mnemo
API and report on the run.  Modules are split into subpackages:

* :mod:`webflow_migrator.extractors` – Webflow Data API client
* :mod:`webflow_migrator.mappers` – per-type field tables and the generic mapper
* :mod:`webflow_migrator.migrators` – Mnemo API, object storage and image relocation
* :mod:`webflow_migrator.models` – collection item and outcome types
* :mod:`webflow_migrator.utils` – errors, logging, slugs, HTTP helpers and reports

Each layer has no direct knowledge of configuration files or execution
strategy; orchestration is handled in :mod:`webflow_migrator.migration_tool`.
"""

__version__ = "0.3.0"
