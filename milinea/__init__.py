"""Top-level package for the milinea trip resolution engine.

milinea answers Spanish free-text trip requests ("quiero ir de la UMSS a
la Cancha") with the fastest bus lines between the two places:

- nlp: text normalization and trip pattern extraction
- services: place resolution, route matching and the conversation flow
- adapters: caches, geocoders, spatial stores, model extraction, maps
- api / cli: HTTP and command-line front-ends
"""

__version__ = "0.1.0"
