NEW_PRODUCT = {
    "name": "铝箔袋",
    "category": "袋类",
    "material": "铝箔",
    "spec": "15x25cm",
    "image": "https://img.example.com/foil.png",
    "unitPrice": 2.5,
    "stock": 300,
}


async def submit_create(client, headers, supplier_key="supplier", **overrides):
    response = await client.post("/product-change-requests", json={
        "productId": "",
        "changeType": "CREATE",
        "pendingChanges": {**NEW_PRODUCT, **overrides},
    }, headers=headers[supplier_key])
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def test_create_request_waits_for_review(client, users, headers):
    request = await submit_create(client, headers)

    assert request["status"] == "PENDING"
    assert request["changeType"] == "CREATE"
    assert request["productId"] == ""
    assert request["product"] is None
    assert request["pendingChanges"]["supplierId"] == str(users["supplier"].id)

    products = await client.get("/products", headers=headers["supplier"])
    assert products.json()["data"] == []


async def test_create_request_needs_the_listing_fields(client, headers):
    response = await client.post("/product-change-requests", json={
        "changeType": "CREATE",
        "pendingChanges": {"name": "铝箔袋", "category": "袋类", "material": "铝箔", "spec": "15x25cm"},
    }, headers=headers["supplier"])

    assert response.status_code == 400
    assert "image" in response.json()["message"]


async def test_create_request_rejects_bad_numbers(client, headers):
    response = await client.post("/product-change-requests", json={
        "changeType": "CREATE",
        "pendingChanges": {**NEW_PRODUCT, "unitPrice": "cheap"},
    }, headers=headers["supplier"])

    assert response.status_code == 400
    assert "unitPrice" in response.json()["message"]


async def test_approving_create_materializes_the_product(client, users, headers):
    request = await submit_create(client, headers)

    approved = await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["platform"])

    assert approved.status_code == 200
    data = approved.json()["data"]
    assert data["status"] == "APPROVED"
    assert data["reviewedBy"] == str(users["platform"].id)
    assert data["reviewedAt"] is not None
    assert data["productId"] != ""
    assert data["product"]["name"] == "铝箔袋"
    assert data["reviewer"]["role"] == "PLATFORM"

    product = await client.get(f"/products/{data['productId']}", headers=headers["supplier"])
    body = product.json()["data"]
    assert body["status"] == "ACTIVE"
    assert body["supplierId"] == str(users["supplier"].id)
    assert body["unitPrice"] == 2.5
    assert body["stock"] == 300


async def test_second_review_conflicts(client, headers):
    request = await submit_create(client, headers)
    url = f"/product-change-requests/{request['id']}"

    await client.post(f"{url}/approve", headers=headers["platform"])

    again = await client.post(f"{url}/approve", headers=headers["platform"])
    assert again.status_code == 400
    reject = await client.post(f"{url}/reject", json={"rejectReason": "too late"}, headers=headers["platform"])
    assert reject.status_code == 400

    products = await client.get("/products", headers=headers["supplier"])
    assert len(products.json()["data"]) == 1


async def test_reject_needs_a_reason(client, headers):
    request = await submit_create(client, headers)
    url = f"/product-change-requests/{request['id']}/reject"

    missing = await client.post(url, json={"rejectReason": "  "}, headers=headers["platform"])
    assert missing.status_code == 400

    rejected = await client.post(url, json={"rejectReason": "图片不清晰"}, headers=headers["platform"])
    data = rejected.json()["data"]
    assert data["status"] == "REJECTED"
    assert data["rejectReason"] == "图片不清晰"
    assert data["productId"] == ""


async def test_reviewer_must_be_the_caller(client, users, headers):
    request = await submit_create(client, headers)

    response = await client.post(
        f"/product-change-requests/{request['id']}/approve",
        json={"reviewerId": str(users["manager"].id)},
        headers=headers["platform"],
    )
    assert response.status_code == 403


async def test_suppliers_cannot_review(client, headers):
    request = await submit_create(client, headers)

    response = await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["supplier"])
    assert response.status_code == 403


async def test_cap_is_checked_again_on_approval(client, headers, create_product):
    for i in range(4):
        await create_product(name=f"产品{i}")
    request = await submit_create(client, headers)
    await create_product(name="产品4")

    response = await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["platform"])
    assert response.status_code == 400
    assert "at most 5" in response.json()["message"]

    still_pending = await client.get("/product-change-requests", params={"status": "PENDING"}, headers=headers["platform"])
    assert [r["id"] for r in still_pending.json()["data"]] == [request["id"]]


async def test_create_request_refused_at_the_cap(client, headers, create_product):
    for i in range(5):
        await create_product(name=f"产品{i}")

    response = await client.post("/product-change-requests", json={
        "changeType": "CREATE", "pendingChanges": NEW_PRODUCT,
    }, headers=headers["supplier"])
    assert response.status_code == 400


async def test_update_request_patches_sensitive_fields(client, headers, create_product):
    product = await create_product()

    submitted = await client.post("/product-change-requests", json={
        "productId": product["id"],
        "changeType": "UPDATE",
        "pendingChanges": {"category": "复合袋", "unitPrice": 1.8},
    }, headers=headers["supplier"])
    assert submitted.status_code == 200
    request = submitted.json()["data"]
    assert request["product"]["id"] == product["id"]

    unchanged = await client.get(f"/products/{product['id']}", headers=headers["supplier"])
    assert unchanged.json()["data"]["category"] == "袋类"

    await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["platform"])

    updated = await client.get(f"/products/{product['id']}", headers=headers["supplier"])
    data = updated.json()["data"]
    assert data["category"] == "复合袋"
    assert data["unitPrice"] == 1.8
    assert data["material"] == "PE"
    assert data["name"] == "软包装"


async def test_update_request_for_someone_elses_product(client, headers, create_product):
    product = await create_product("other_supplier")

    response = await client.post("/product-change-requests", json={
        "productId": product["id"], "changeType": "UPDATE", "pendingChanges": {"spec": "1x1cm"},
    }, headers=headers["supplier"])
    assert response.status_code == 403


async def test_update_request_for_unknown_product(client, headers):
    response = await client.post("/product-change-requests", json={
        "productId": "00000000-0000-0000-0000-000000000000", "changeType": "UPDATE", "pendingChanges": {"spec": "1x1cm"},
    }, headers=headers["supplier"])
    assert response.status_code == 404


async def test_update_request_for_delisted_product(client, headers, create_product):
    product = await create_product()
    await client.patch(f"/products/{product['id']}/status", json={"status": "DELISTED"}, headers=headers["platform"])

    response = await client.post("/product-change-requests", json={
        "productId": product["id"], "changeType": "UPDATE", "pendingChanges": {"spec": "1x1cm"},
    }, headers=headers["supplier"])
    assert response.status_code == 400


async def test_cancel_only_own_pending_requests(client, users, headers):
    request = await submit_create(client, headers)
    url = f"/product-change-requests/{request['id']}"

    stranger = await client.delete(url, headers=headers["other_supplier"])
    assert stranger.status_code == 403

    impersonated = await client.request(
        "DELETE", url, json={"supplierId": str(users["supplier"].id)}, headers=headers["other_supplier"]
    )
    assert impersonated.status_code == 403

    cancelled = await client.delete(url, headers=headers["supplier"])
    assert cancelled.status_code == 200

    remaining = await client.get("/product-change-requests", headers=headers["supplier"])
    assert remaining.json()["data"] == []

    gone = await client.delete(url, headers=headers["supplier"])
    assert gone.status_code == 404


async def test_reviewed_requests_cannot_be_cancelled(client, headers):
    request = await submit_create(client, headers)
    await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["platform"])

    response = await client.delete(f"/product-change-requests/{request['id']}", headers=headers["supplier"])
    assert response.status_code == 400


async def test_suppliers_only_see_their_own_requests(client, headers):
    mine = await submit_create(client, headers)
    await submit_create(client, headers, "other_supplier", name="别家新品")

    supplier_view = await client.get("/product-change-requests", headers=headers["supplier"])
    assert [r["id"] for r in supplier_view.json()["data"]] == [mine["id"]]

    queue = await client.get("/product-change-requests", headers=headers["platform"])
    assert len(queue.json()["data"]) == 2

    manufacturer = await client.get("/product-change-requests", headers=headers["manufacturer"])
    assert manufacturer.status_code == 403


async def submit_update(client, headers, product_id, pending_changes, supplier_key="supplier"):
    response = await client.post("/product-change-requests", json={
        "productId": product_id, "changeType": "UPDATE", "pendingChanges": pending_changes,
    }, headers=headers[supplier_key])
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def test_update_request_approved_twice_conflicts(client, headers, create_product):
    product = await create_product()
    request = await submit_update(client, headers, product["id"], {"spec": "25x35cm"})
    url = f"/product-change-requests/{request['id']}/approve"

    first = await client.post(url, headers=headers["platform"])
    assert first.status_code == 200

    second = await client.post(url, headers=headers["platform"])
    assert second.status_code == 400
    assert second.json() == {
        "success": False,
        "message": "Cannot move change request from APPROVED to APPROVED",
    }


async def test_blank_numbers_clear_fields_and_absent_keys_are_kept(client, headers, create_product):
    product = await create_product(unitsPerPackage=10, packageCount=5)
    request = await submit_update(client, headers, product["id"], {"unitPrice": None, "packageCount": ""})

    await client.post(f"/product-change-requests/{request['id']}/approve", headers=headers["platform"])

    updated = await client.get(f"/products/{product['id']}", headers=headers["supplier"])
    data = updated.json()["data"]
    assert data["unitPrice"] is None
    assert data["packageCount"] is None
    assert data["unitsPerPackage"] == 10
    assert data["name"] == "软包装"


async def test_strangers_cannot_cancel_reviewed_requests(client, headers):
    approved = await submit_create(client, headers)
    await client.post(f"/product-change-requests/{approved['id']}/approve", headers=headers["platform"])
    rejected = await submit_create(client, headers, name="复合膜")
    await client.post(
        f"/product-change-requests/{rejected['id']}/reject", json={"rejectReason": "规格不全"}, headers=headers["platform"]
    )

    for request in (approved, rejected):
        response = await client.delete(f"/product-change-requests/{request['id']}", headers=headers["other_supplier"])
        assert response.status_code == 403

    own = await client.delete(f"/product-change-requests/{approved['id']}", headers=headers["supplier"])
    assert own.status_code == 400


async def test_update_request_is_cancelled_only_by_the_product_owner(client, headers, create_product):
    product = await create_product()
    request = await submit_update(client, headers, product["id"], {"material": "PET"})
    url = f"/product-change-requests/{request['id']}"

    stranger = await client.delete(url, headers=headers["other_supplier"])
    assert stranger.status_code == 403

    owner = await client.delete(url, headers=headers["supplier"])
    assert owner.status_code == 200
