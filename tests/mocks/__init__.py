WEBHOOK_SECRET = "test_secret"
ADMIN_AUTH = ("admin", "test_password")


class MockData:
    """Mock payloads for testing"""
    @staticmethod
    def get_rate_request(items, currency="USD"):
        """Shopify carrier-service callback body around ``items``"""
        return {
            "rate": {
                "origin": {
                    "country": "US",
                    "postal_code": "90210",
                    "province": "CA",
                    "city": "Beverly Hills"
                },
                "destination": {
                    "country": "US",
                    "postal_code": "10001",
                    "province": "NY",
                    "city": "New York"
                },
                "items": items,
                "currency": currency,
                "locale": "en"
            }
        }

    @staticmethod
    def get_cart_item(variant_id=789012, price=3000, quantity=1, **extra):
        item = {
            "name": "Test Product",
            "sku": "TEST-SKU",
            "quantity": quantity,
            "grams": 500,
            "price": price,
            "vendor": "Test Vendor",
            "requires_shipping": True,
            "taxable": True,
            "fulfillment_service": "manual",
            "product_id": 123456,
            "variant_id": variant_id,
        }
        item.update(extra)
        return item

    @staticmethod
    def get_product_update(product_id=123456, variant_ids=(789012, 789013)):
        return {
            "id": product_id,
            "title": "Test Product",
            "variants": [{"id": variant_id, "product_id": product_id} for variant_id in variant_ids],
        }
