"""Shared fixtures for the LifeLink test suites"""
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import override_settings
from django.utils import timezone

from donors.models import DonorProfile
from requisitions import lifecycle

User = get_user_model()


class LifeLinkTestMixin:

    def setUp(self):
        super().setUp()
        cache.clear()
        # deliver notifications in-process instead of through the broker
        eager = override_settings(CELERY_TASK_ALWAYS_EAGER=True, CELERY_TASK_EAGER_PROPAGATES=False)
        eager.enable()
        self.addCleanup(eager.disable)
        self.user_counter = 0

    def make_user(self, username=None, phone='9812345678', **extra):
        self.user_counter += 1
        username = username or f'user{self.user_counter}'
        return User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='DemoPass123!',
            phone=phone,
            **extra
        )

    def make_donor(self, blood_group='O+', last_donation_date=None, show_phone=True,
                   city='Kathmandu', state='Bagmati', total_donations=0, phone='9812345678', **extra):
        user = self.make_user(phone=phone)
        return DonorProfile.objects.create(
            user=user,
            blood_group=blood_group,
            is_blood_donor=True,
            show_phone=show_phone,
            city=city,
            state=state,
            last_donation_date=last_donation_date,
            total_donations=total_donations,
            **extra
        )

    def make_requisition(self, requester=None, required_blood_group='A+', hours=48, now=None, **fields):
        now = now or timezone.now()
        data = {
            'patient_name': 'Ram Bahadur',
            'hospital_name': 'Bir Hospital',
            'contact_number': '9800000000',
            'required_blood_group': required_blood_group,
            'location': 'Kathmandu',
            'required_by_date': now + timedelta(hours=hours),
        }
        data.update(fields)
        return lifecycle.create_requisition(requester or self.make_user(), data, now=now)
