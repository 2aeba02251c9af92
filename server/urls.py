"""
URL configuration for server project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""
from django.contrib import admin
from django.urls import include, path

from system.views import health, secure_ping


urlpatterns = [
    path('_health/', health, name='health'),
    path('_health', health, name='health_no_slash'),
    path('api/secure-ping/', secure_ping, name='secure_ping'),
    path('api/auth/', include('accounts.urls')),
    path('api/', include('catalog.urls')),
    path('api/', include('enrollment.urls')),
    path('api/', include('dashboard.urls')),
    path('admin/', admin.site.urls),
]
