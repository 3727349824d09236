"""
Integrations with external tools and service APIs.

Binaries (``docker``, ``openssl``) are driven through ``process.run_command``;
service HTTP APIs through the ``ServiceHttpClient`` subclasses in each
vendor package.
"""
