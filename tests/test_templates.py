from secretly.templates import render_layout


def test_page_is_a_full_document():
    page = render_layout("Home", "")
    assert page.startswith("<!doctype html>")
    assert page.endswith("</main></body></html>")


def test_title_is_followed_by_site_name():
    page = render_layout("Home", "")
    assert "<title>Home - secretly</title>" in page


def test_title_is_escaped():
    page = render_layout("<b>&\"'", "")
    assert "<title>&lt;b&gt;&amp;&#34;&#39; - secretly</title>" in page
    assert "<b>" not in page


def test_content_is_inserted_raw_inside_main():
    content = "<p>hello</p>"
    page = render_layout("Home", content)
    main_start = page.index("<main")
    main_body = page[page.index(">", main_start) + 1 : page.index("</main>")]
    assert main_body == content


def test_layout_around_content_does_not_depend_on_it():
    first = render_layout("Home", "one")
    second = render_layout("Home", "two")
    assert first.replace("one", "two") == second


def test_app_script_is_referenced():
    page = render_layout("Home", "")
    assert '<script src="/static/js/app.js" defer></script>' in page