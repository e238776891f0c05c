from .conf import get_setting
from .models import PrintingShop, Product, Profile


class ProductLookup:
    def find_by_id(self, product_id):
        try:
            return Product.objects.get(pk=product_id)
        except (Product.DoesNotExist, ValueError):
            return None


class UserLookup:
    def find_by_id(self, user_id):
        try:
            return Profile.objects.select_related("user").get(user_id=user_id)
        except (Profile.DoesNotExist, ValueError):
            return None

    def find_designers(self):
        return list(
            Profile.objects.select_related("user").filter(role__in=get_setting("WORKLOAD_ROLES")).order_by("user_id")
        )


class ShopLookup:
    def find_by_id(self, shop_id):
        try:
            return PrintingShop.objects.get(pk=shop_id)
        except (PrintingShop.DoesNotExist, ValueError):
            return None
