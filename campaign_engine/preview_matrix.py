"""
Batch storefront preview over a pandas DataFrame

Each input row describes one member profile (``id``, ``name``, optional
``description`` plus one camelCase column per attribute). The output has one
row per generated offer for that profile, so a profile with three offers
produces three rows; a profile with no offers produces a single row with
empty offer columns.
"""

from typing import Any, Dict, List, Optional, Union

import pandas as pd
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .core import StorefrontEngine
from .models import GeneratedOffer, MemberProfile, PreviewMode


PROFILE_COLUMNS = ['id', 'name', 'description']

OFFER_COLUMNS = [
    'offer_id',
    'offer_title',
    'offer_variant',
    'offer_section',
    'is_featured',
    'campaign_id',
    'product_id',
    'preapproval_limit',
    'cta_text',
    'processing_error',
]


class PreviewMatrix:
    """
    Runs the engine for many member profiles at once
    """

    def __init__(self, engine: StorefrontEngine,
                 preview_mode: Union[PreviewMode, str, None] = None):
        """
        Initialize the preview matrix

        Args:
            engine: Engine holding the snapshot to evaluate
            preview_mode: Preview mode for every row; the engine default when None
        """
        self.engine = engine
        self.preview_mode = preview_mode
        self.logger = logger

    def _row_to_profile(self, row: pd.Series) -> MemberProfile:
        """Convert a pandas row to a MemberProfile; blank cells are absent attributes"""
        attributes: Dict[str, Any] = {}
        for column, value in row.items():
            if column in PROFILE_COLUMNS:
                continue
            if value is None or (not isinstance(value, (list, dict)) and pd.isna(value)):
                continue
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
            elif hasattr(value, 'item'):
                # numpy scalar to plain Python
                value = value.item()
            attributes[str(column)] = value

        profile_id = row.get('id')
        if profile_id is None or pd.isna(profile_id) or str(profile_id).strip() == "":
            raise ValueError("Profile row has no id")

        return MemberProfile.model_validate({
            'id': str(profile_id).strip(),
            'name': self._text(row.get('name')),
            'description': self._text(row.get('description')),
            'attributes': attributes,
        })

    @staticmethod
    def _text(value: Any) -> str:
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    @staticmethod
    def _offer_columns(offer: Optional[GeneratedOffer]) -> Dict[str, Any]:
        if offer is None:
            return {column: None for column in OFFER_COLUMNS if column != 'processing_error'}
        return {
            'offer_id': offer.id,
            'offer_title': offer.title,
            'offer_variant': offer.variant.value,
            'offer_section': offer.section,
            'is_featured': offer.is_featured,
            'campaign_id': offer.campaign_id,
            'product_id': offer.product_id,
            'preapproval_limit': offer.preapproval_limit,
            'cta_text': offer.cta_text,
        }

    def process_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Process a DataFrame of member profiles with row explosion

        Args:
            df: Input DataFrame, one member profile per row

        Returns:
            DataFrame with the input columns followed by the offer columns, one
            row per generated offer (or one row when a profile gets none)
        """
        self.logger.info(f"Processing DataFrame with {len(df)} profiles")

        results: List[Dict[str, Any]] = []
        error_count = 0

        for index, row in df.iterrows():
            base_row = row.to_dict()
            try:
                profile = self._row_to_profile(row)
                offers = self.engine.generate_offers(profile, self.preview_mode)
            except (PydanticValidationError, ValueError, TypeError) as e:
                error_count += 1
                self.logger.warning(f"Error processing row {index}: {e}")
                error_row = {**base_row, **self._offer_columns(None)}
                error_row['processing_error'] = str(e)
                results.append(error_row)
                continue

            if not offers:
                results.append({**base_row, **self._offer_columns(None), 'processing_error': ""})
                continue

            for offer in offers:
                results.append({**base_row, **self._offer_columns(offer), 'processing_error': ""})

        input_columns = [c for c in df.columns if c not in OFFER_COLUMNS]
        output_df = pd.DataFrame(results, columns=input_columns + OFFER_COLUMNS)

        self.logger.info(
            f"Preview matrix produced {len(output_df)} rows from {len(df)} profiles ({error_count} errors)"
        )
        return output_df
