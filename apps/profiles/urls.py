"""
Profile Wizard URL Configuration

All routes are relative to /api/profile/
"""
from django.urls import path

from . import views

urlpatterns = [
    # Wizard navigation (the wizard host itself is mounted at /api/profile)
    path('navigate', views.ProfileNavigateView.as_view(), name='profile_navigate'),
    path('steps/<str:step>', views.ProfileStepView.as_view(), name='profile_step'),

    # Username uniqueness within a location
    path('username-availability', views.UsernameAvailabilityView.as_view(), name='profile_username_availability'),
    path('username-availability/result', views.UsernameCheckResultView.as_view(), name='profile_username_check_result'),

    # Read-only profile view
    path('details', views.ProfileDetailsView.as_view(), name='profile_details'),

    # Reference data
    path('languages', views.LanguagesView.as_view(), name='profile_languages'),
    path('specializations', views.SpecializationsView.as_view(), name='profile_specializations'),
    path('states', views.StatesView.as_view(), name='profile_states'),
    path('states/<int:state_id>/districts', views.DistrictsView.as_view(), name='profile_districts'),

    # Uploaded assets
    path('avatar', views.ProfilePictureView.as_view(), name='profile_avatar'),
    path('certificate', views.CertificateView.as_view(), name='profile_certificate'),
]
