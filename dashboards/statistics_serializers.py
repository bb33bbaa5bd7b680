"""
Statistics Serializers

Query parameter validation for the statistics and export endpoints.
"""

import uuid

from rest_framework import serializers

from .services.housing_analytics import ALL_FARMS
from .services.housing_statistics import TimeRange


class StatisticsFilterSerializer(serializers.Serializer):
    """
    ?farm=<uuid>|all&time_range=<range>&month=<1-12>&year=<yyyy>

    month and year are required by the specific ranges and ignored otherwise.
    """
    farm = serializers.CharField(required=False, allow_blank=True)
    time_range = serializers.ChoiceField(choices=TimeRange.choices, default=TimeRange.MONTH)
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
    year = serializers.IntegerField(required=False, min_value=1900, max_value=9999)

    def validate_farm(self, value):
        if value in ('', None):
            return None
        if value == ALL_FARMS:
            return value
        try:
            return str(uuid.UUID(value))
        except ValueError:
            raise serializers.ValidationError("Must be 'all' or a farm id.")

    def validate(self, attrs):
        time_range = attrs['time_range']

        if time_range == TimeRange.SPECIFIC_MONTH:
            missing = [field for field in ('month', 'year') if attrs.get(field) is None]
            if missing:
                raise serializers.ValidationError({
                    field: 'Required when time_range is specific_month.' for field in missing
                })
        elif time_range == TimeRange.SPECIFIC_YEAR:
            if attrs.get('year') is None:
                raise serializers.ValidationError({'year': 'Required when time_range is specific_year.'})
            attrs['month'] = None
        else:
            attrs['month'] = None
            attrs['year'] = None

        attrs.setdefault('farm', None)
        return attrs
