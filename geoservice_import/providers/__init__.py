"""Feature-service adapters.

- base: ``FeatureSource`` contract, ``FeatureQuery`` and ``FetchFailure``
- esri_json: EsriJSON to GeoJSON conversion
- arcgis: httpx-backed ArcGIS REST query adapter
"""
