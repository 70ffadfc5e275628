def test_blog_lifecycle(client, admin, editor):
    body = {
        "name": "Wearing Rudraksha",
        "heading": "How to wear your <i>first</i> mala",
        "description": "<h2>Start</h2><p>Soak the beads.</p><iframe src='x'></iframe>",
        "category": ["Guides"],
        "image": "https://cdn.beads.com/blog.png",
    }
    resp = client.post("/api/blog", json=body, headers=editor[1])
    assert resp.status_code == 201
    blog = resp.get_json()["data"]
    assert blog["slug"] == "wearing-rudraksha"
    assert blog["heading"] == "How to wear your first mala"
    assert "iframe" not in blog["description"]

    listed = client.get("/api/blog?category=Guides").get_json()["data"]
    assert listed["total"] == 1

    resp = client.patch("/api/blog/wearing-rudraksha", json={"slug": "Wear Guide"}, headers=editor[1])
    assert resp.get_json()["data"]["slug"] == "wear-guide"
    assert client.get("/api/blog/wearing-rudraksha").status_code == 404

    assert client.delete("/api/blog/wear-guide", headers=editor[1]).status_code == 403
    assert client.delete("/api/blog/wear-guide", headers=admin[1]).status_code == 200


def test_blog_category_list_uses_categories_key(client, admin):
    client.post("/api/blogcategory", json={"name": "Guides"}, headers=admin[1])
    resp = client.get("/api/blogcategory")
    body = resp.get_json()
    assert body["message"] == "Blog categories retrieved successfully"
    assert [c["slug"] for c in body["data"]["categories"]] == ["guides"]


def test_testimonial_slug_from_full_name(client, admin):
    body = {
        "fullName": "Ram Bahadur",
        "address": "Pokhara",
        "rating": 5,
        "description": "Authentic beads, fast delivery.",
        "image": "/images/ram.jpg",
    }
    resp = client.post("/api/testimonial", json=body, headers=admin[1])
    assert resp.status_code == 201
    assert resp.get_json()["data"]["slug"] == "ram-bahadur"

    bad = client.post("/api/testimonial", json=dict(body, fullName="Hari", rating=6), headers=admin[1])
    assert bad.status_code == 400


def test_content_blocks_by_id_and_type(client, admin):
    banner = client.post(
        "/api/content",
        json={"type": "banner", "title": "Shravan sale", "description": "<p>10% off</p>"},
        headers=admin[1],
    ).get_json()["data"]
    client.post(
        "/api/content",
        json={"type": "package", "title": "Starter kit", "description": "<p>Mala and bracelet</p>"},
        headers=admin[1],
    )

    banners = client.get("/api/content?type=banner").get_json()["data"]["contents"]
    assert [c["title"] for c in banners] == ["Shravan sale"]
    assert client.get("/api/content?type=popup").status_code == 400

    resp = client.get(f"/api/content/{banner['id']}")
    assert resp.status_code == 200
    assert client.get("/api/content/not-an-id").status_code == 400


def test_faq_slug_and_type_filter(client, admin):
    resp = client.post(
        "/api/faq",
        json={"question": "How do I clean my mala?", "answer": "<p>Soft brush</p><script>x()</script>"},
        headers=admin[1],
    )
    assert resp.status_code == 201
    faq = resp.get_json()["data"]
    assert faq["slug"] == "how-do-i-clean-my-mala"
    assert faq["type"] == "faq"
    assert "<script" not in faq["answer"]

    image = {"type": "image", "question": "Illustration", "answer": "Beads", "image": "/images/faq.png"}
    assert client.post("/api/faq", json=image, headers=admin[1]).status_code == 201
    resp = client.post("/api/faq", json=dict(image, question="Another one"), headers=admin[1])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Only one image document is allowed"

    listed = client.get("/api/faq").get_json()["data"]
    assert [f["slug"] for f in listed["faqs"]] == ["how-do-i-clean-my-mala"]
    assert client.get("/api/faq?type=image").get_json()["data"]["total"] == 1
    assert client.get("/api/faq?type=video").status_code == 400

    assert client.get("/api/faq/how-do-i-clean-my-mala").status_code == 200


def test_benefit_slug_from_title(client, admin, editor):
    body = {"title": "Inner Calm", "description": "<p>Steadies the breath</p>"}
    resp = client.post("/api/benefit", json=body, headers=editor[1])
    assert resp.status_code == 201
    assert resp.get_json()["data"]["slug"] == "inner-calm"

    dup = client.post("/api/benefit", json=body, headers=admin[1])
    assert dup.status_code == 400

    resp = client.patch("/api/benefit/inner-calm", json={"description": "<p>Better sleep</p>"}, headers=admin[1])
    assert resp.get_json()["data"]["description"] == "<p>Better sleep</p>"
    assert client.delete("/api/benefit/inner-calm", headers=editor[1]).status_code == 403
