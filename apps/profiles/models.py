"""
Profile Models

UNMANAGED models that map to existing PostgreSQL tables owned by Supabase.
Profiles are read and written with raw SQL (see selectors/services); the
location models back the location import command.
"""
from django.db import models


class State(models.Model):
    """
    Maps to: public.states
    """
    id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=100, unique=True)
    code = models.CharField(max_length=10, unique=True)

    class Meta:
        managed = False
        db_table = 'states'
        ordering = ['name']

    def __str__(self):
        return self.name


class District(models.Model):
    """
    Maps to: public.districts
    Unique per (state, name).
    """
    id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=100)
    state = models.ForeignKey(State, on_delete=models.DO_NOTHING, db_column='state_id', related_name='districts')

    class Meta:
        managed = False
        db_table = 'districts'
        ordering = ['name']
        unique_together = [('state', 'name')]

    def __str__(self):
        return f'{self.name}, {self.state_id}'
