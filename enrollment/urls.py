from django.urls import path

from .views import (
    create_session,
    session_detail,
    session_fields,
    session_next,
    session_previous,
    session_submit,
)

urlpatterns = [
    path('enrollment/sessions', create_session, name='enrollment_create_session'),
    path('enrollment/sessions/<uuid:session_id>', session_detail, name='enrollment_session_detail'),
    path('enrollment/sessions/<uuid:session_id>/fields', session_fields, name='enrollment_session_fields'),
    path('enrollment/sessions/<uuid:session_id>/next', session_next, name='enrollment_session_next'),
    path('enrollment/sessions/<uuid:session_id>/previous', session_previous, name='enrollment_session_previous'),
    path('enrollment/sessions/<uuid:session_id>/submit', session_submit, name='enrollment_session_submit'),
]
