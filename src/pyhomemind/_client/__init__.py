"""Internal helpers backing :class:`pyhomemind.client.HomeMindClient`."""
