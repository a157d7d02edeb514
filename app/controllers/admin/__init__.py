# =============================================================================
# app/controllers/admin - Back-office Controllers
# =============================================================================
# - dashboard.py: Overview counters, recent orders, low stock
# - products.py: Product CRUD and CSV import
# - categories.py: Category CRUD
# - orders.py: Order listing, details, status and notes
# - shipping.py: Zones, methods and weight brackets
# - content.py: Blog posts, blog categories, certificates, gallery
# =============================================================================
