def test_register_list_and_delete_document(client, employee_user, admin_user, auth_headers):
    headers = auth_headers(employee_user)
    response = client.post(
        "/api/documents",
        json={"document_name": "passport.pdf", "document_type": "identity", "file_url": "s3://docs/passport.pdf"},
        headers=headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["notice"]["title"] == "Document Added"
    document_id = body["data"]["id"]

    assert [d["document_name"] for d in client.get("/api/documents/me", headers=headers).json()] == ["passport.pdf"]
    assert client.get("/api/documents/me", headers=auth_headers(admin_user)).json() == []

    assert client.delete(f"/api/documents/{document_id}", headers=auth_headers(admin_user)).status_code == 404
    assert client.delete(f"/api/documents/{document_id}", headers=headers).status_code == 200
    assert client.get("/api/documents/me", headers=headers).json() == []
