def test_metrics_endpoint_exposes_report_metrics(api_client):
    api_client.get("/api/v1/reports", params={"type": "financial"})

    response = api_client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'transit_insights_report_requests_total{report="financial",result="success"}' in response.text
    assert "transit_insights_store_operations_total" in response.text
