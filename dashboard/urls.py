from django.urls import path

from .api import (
    admin_coupon_detail,
    admin_coupons,
    admin_dashboard,
    admin_payment_method_detail,
    admin_payment_methods,
    admin_program_detail,
    admin_programs,
    admin_registration_detail,
)

urlpatterns = [
    path('admin/dashboard', admin_dashboard, name='admin_dashboard'),
    path('admin/programs', admin_programs, name='admin_programs'),
    path('admin/programs/<str:program_id>', admin_program_detail, name='admin_program_detail'),
    path('admin/payment-methods', admin_payment_methods, name='admin_payment_methods'),
    path('admin/payment-methods/<str:value>', admin_payment_method_detail, name='admin_payment_method_detail'),
    path('admin/coupons', admin_coupons, name='admin_coupons'),
    path('admin/coupons/<str:coupon_id>', admin_coupon_detail, name='admin_coupon_detail'),
    path('admin/registrations/<str:registration_id>', admin_registration_detail, name='admin_registration_detail'),
]
