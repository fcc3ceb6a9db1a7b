import pytest


@pytest.fixture
def service_backend(order_backend, monkeypatch):
    from voice_intake import main

    monkeypatch.setattr(main.submitter, "_client", order_backend.client())
    return order_backend
