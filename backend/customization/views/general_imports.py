# backend/customization/views/general_imports.py

# Django REST Framework imports
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated, AllowAny

from ..exceptions import (
    Conflict, CustomizationError, InvalidSignature, InvalidState, NotFound, PaymentGatewayError, Unauthorized,
)
from ..permissions import IsCustomizationAdmin, IsDesigner, IsShopOwner
