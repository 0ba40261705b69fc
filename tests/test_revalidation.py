import httpx

from revalidation import Revalidator, content_targets, project_targets, site_targets


def test_content_targets_cover_locale_pages_and_tags():
    paths, tags = content_targets("en")
    assert "/en" in paths
    assert "/api/content/en" in paths
    assert {"content-en", "navigation-en", "footer"} <= set(tags)


def test_project_targets_include_detail_page_when_slug_known():
    paths, tags = project_targets("tr", "cini-vazo")
    assert "/tr/projects/cini-vazo" in paths
    assert tags == ["projects", "projects-tr"]
    assert "/tr/projects/cini-vazo" not in project_targets("tr")[0]


def test_unconfigured_webhook_only_records():
    result = Revalidator().revalidate_targets(site_targets())
    assert result.paths == ["/"]
    assert result.failed == []


def test_each_target_is_sent_and_failures_do_not_stop_the_rest():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = request.read().decode()
        sent.append((request.headers["x-revalidate-secret"], body))
        if "projects-tr" in body:
            return httpx.Response(500)
        return httpx.Response(200, json={"revalidated": True})

    revalidator = Revalidator(
        "http://front.test/api/revalidate",
        secret="s3cret",
        transport=httpx.MockTransport(handler),
    )
    result = revalidator.revalidate_targets(project_targets("tr"))

    assert len(sent) == 5
    assert all(secret == "s3cret" for secret, _ in sent)
    assert result.paths == ["/", "/tr", "/tr/projects"]
    assert result.tags == ["projects"]
    assert result.failed == ["projects-tr"]
