# api/urls.py
from django.urls import path

from . import views

app_name = 'api'

urlpatterns = [
    # Blood profile & donations
    path('profile/blood/', views.BloodProfileView.as_view(), name='blood-profile'),
    path('donations/', views.DonationsView.as_view(), name='donations'),
    path('donation-status/', views.DonationStatusView.as_view(), name='donation-status'),

    # Dashboard
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('stats/bloodgroups/', views.BloodGroupStatsView.as_view(), name='blood-group-stats'),

    # Requisitions (seeker side)
    path('requisitions/', views.RequisitionsView.as_view(), name='requisitions'),
    path('requisitions/<int:requisition_id>/', views.RequisitionDetailView.as_view(), name='requisition-detail'),
    path('requisitions/<int:requisition_id>/status/', views.RequisitionStatusView.as_view(), name='requisition-status'),
    path('requisitions/<int:requisition_id>/reuse/', views.RequisitionReuseView.as_view(), name='requisition-reuse'),
    path('willing-donors/<int:requisition_id>/', views.WillingDonorsView.as_view(), name='willing-donors'),
    path('search-donors/', views.SearchDonorsView.as_view(), name='search-donors'),
    path('notify-selected/', views.NotifySelectedView.as_view(), name='notify-selected'),
    path('notify-all/', views.NotifyAllView.as_view(), name='notify-all'),

    # Donor side
    path('discover-requisitions/', views.DiscoverRequisitionsView.as_view(), name='discover-requisitions'),
    path('requisitions/<int:requisition_id>/respond/', views.RequisitionRespondView.as_view(), name='requisition-respond'),
    path('notifications/', views.NotificationsView.as_view(), name='notifications'),
    path('notifications/<int:notification_id>/read/', views.NotificationReadView.as_view(), name='notification-read'),
    path('notifications/<int:notification_id>/respond/', views.NotificationRespondView.as_view(), name='notification-respond'),
]
