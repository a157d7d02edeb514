# =============================================================================
# tests/test_catalog.py - Catalog & Blog Tests
# =============================================================================
# Product listing filters and sorting, slugs, product deletion, the category
# tree, and blog post visibility.
#
# Run with: pytest tests/test_catalog.py -v
# =============================================================================

import pytest

from app.exceptions import FormValidationError, NotFoundError
from core.models import BlogCategoryForm, BlogPostForm, CategoryForm, PostStatus, ProductFilters
from core.services import BlogService, CategoryService, ProductService
from core.services.category_service import CategoryInUseError
from core.services.product_service import effective_price


@pytest.fixture
def products(conn):
    return ProductService(conn)


@pytest.fixture
def categories(conn):
    return CategoryService(conn)


class TestProducts:
    """Tests for ProductService."""

    def test_effective_price(self):
        assert effective_price({"price": 20, "sale_price": 15}) == 15.0
        assert effective_price({"price": 20, "sale_price": None}) == 20.0
        assert effective_price({"price": 20, "sale_price": 0}) == 20.0

    def test_slug_collisions(self, make_product):
        first = make_product(name="Cinnamon Sticks")
        second = make_product(name="Cinnamon Sticks")
        assert (first["slug"], second["slug"]) == ("cinnamon-sticks", "cinnamon-sticks-1")

    def test_duplicate_sku(self, make_product):
        make_product(sku="ALBA-1")
        with pytest.raises(FormValidationError):
            make_product(sku="ALBA-1")

    def test_filters(self, products, make_product):
        make_product(name="Alba Quills", price=30, sale_price=24, is_organic=True)
        make_product(name="Powder", price=8, stock_quantity=0)
        make_product(name="Oil", price=15, is_active=False)

        def names(**filters):
            result = products.get_filtered(ProductFilters(**filters), sort="name_asc")
            return [p["name"] for p in result["products"]]

        assert names() == ["Alba Quills", "Powder"]
        assert names(is_organic=True) == ["Alba Quills"]
        assert names(in_stock=True) == ["Alba Quills"]
        assert names(on_sale=True) == ["Alba Quills"]
        assert names(price_max=25) == ["Alba Quills", "Powder"]
        assert names(price_min=10) == ["Alba Quills"]
        assert names(search="powd") == ["Powder"]

    def test_sort_and_paging(self, products, make_product):
        for price in (12, 5, 40):
            make_product(price=price)

        result = products.get_filtered(sort="price_low", limit=2)

        assert [float(p["price"]) for p in result["products"]] == [5.0, 12.0]
        assert (result["total"], result["pages"]) == (3, 2)

    def test_query_filters_ignore_garbage(self):
        filters = ProductFilters.from_query({"price_min": "abc", "price_max": "-4", "search": ""})
        assert filters.price_min is None
        assert filters.price_max == 0.0
        assert filters.search is None

    def test_delete_unordered_product(self, products, make_product):
        product = make_product()
        products.delete_product(product["id"])
        with pytest.raises(NotFoundError):
            products.get(product["id"])

    def test_delete_ordered_product_deactivates(self, conn, products, make_product):
        product = make_product()
        conn.query(
            "INSERT INTO orders (order_number, email, first_name, last_name, shipping_address, "
            "billing_address, payment_method, subtotal, total_amount, created_at) "
            "VALUES ('CC2026000001', 'a@b.com', 'A', 'B', 'x', 'x', 'bank_transfer', 10, 10, '2026-01-01')"
        )
        conn.query(
            "INSERT INTO order_items (order_id, product_id, product_name, product_sku, quantity, "
            "unit_price, total_price) VALUES (1, :id, 'n', 's', 1, 10, 10)",
            {"id": product["id"]},
        )

        products.delete_product(product["id"])

        assert products.get(product["id"])["is_active"] in (0, False)


class TestCategories:
    """Tests for CategoryService."""

    def test_tree_and_descendants(self, categories, category):
        child = categories.create(CategoryForm(name="Alba", parent_id=category["id"]))
        grandchild = categories.create(CategoryForm(name="Alba Special", parent_id=child))

        tree = categories.get_tree()

        assert [node["name"] for node in tree] == ["Cinnamon Sticks"]
        assert tree[0]["children"][0]["children"][0]["id"] == grandchild
        assert set(categories.get_descendant_ids(category["id"])) == {category["id"], child, grandchild}
        assert [c["name"] for c in categories.get_breadcrumb(grandchild)] == ["Cinnamon Sticks", "Alba", "Alba Special"]

    def test_cannot_delete_with_products(self, categories, category, make_product):
        make_product()
        with pytest.raises(CategoryInUseError):
            categories.delete(category["id"])

    def test_cannot_delete_with_children(self, categories, category):
        categories.create(CategoryForm(name="Alba", parent_id=category["id"]))
        with pytest.raises(CategoryInUseError):
            categories.delete(category["id"])

    def test_cannot_be_own_parent(self, categories, category):
        with pytest.raises(CategoryInUseError):
            categories.update(category["id"], CategoryForm(name="Loop", parent_id=category["id"]))


class TestBlog:
    """Tests for BlogService."""

    def test_only_published_posts_are_visible(self, conn):
        blog = BlogService(conn)
        category_id = blog.create_category(BlogCategoryForm(name="Recipes"))
        blog.create_post(BlogPostForm(title="Cinnamon Tea", content="<p>Steep</p>", category_id=category_id,
                                      status=PostStatus.PUBLISHED), author_id=None)
        blog.create_post(BlogPostForm(title="Draft Notes", content="wip"), author_id=None)

        published = blog.get_published()

        assert [post["title"] for post in published["posts"]] == ["Cinnamon Tea"]
        assert blog.get_published_by_slug("cinnamon-tea")["content"] == "<p>Steep</p>"
        assert blog.get_published_by_slug("draft-notes") is None
        assert blog.can_delete_category(category_id) is False
