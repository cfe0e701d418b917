"""Chart payload helpers.

Chart configurations and results cross the process boundary as camelCase JSON
documents. This package converts them to and from the pure `analysis` DTOs.
"""
