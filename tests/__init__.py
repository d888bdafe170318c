"""rawrepo-connector test suite.

Test organization:
- unit/test_params.py, unit/test_paths.py: request parameters and target building
- unit/test_retry.py, unit/test_classifier.py, unit/test_errors.py: resilience and error taxonomy
- unit/test_models.py: record identity, collections and history
- unit/test_*_connector.py: connectors end to end against a fake service
- unit/test_config.py, unit/test_logging.py: settings and logging

fakes.py holds the fake service (httpx.MockTransport) and payload builders.
"""
