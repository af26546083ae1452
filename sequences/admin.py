from django.contrib import admin

from .models import SequenceCounter


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ('prefix', 'scope_date', 'last_value', 'updated_at')
    list_filter = ('prefix',)
    ordering = ('-scope_date', 'prefix')
    readonly_fields = ('updated_at',)
