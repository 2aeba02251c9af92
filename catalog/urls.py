from django.urls import path

from .api import api_catalog_levels, api_catalog_quote, api_payment_methods, api_programs

urlpatterns = [
    path('catalog/levels', api_catalog_levels, name='api_catalog_levels'),
    path('catalog/quote', api_catalog_quote, name='api_catalog_quote'),
    path('programs', api_programs, name='api_programs'),
    path('payment-methods', api_payment_methods, name='api_payment_methods'),
]
