from pydantic import BaseModel, ConfigDict, Field, StrictStr
from typing import Any, Dict, List, Optional


class _WireModel(BaseModel):
	# Attributes are English; input is accepted only under the Polish wire names.
	model_config = ConfigDict(populate_by_name=False)


class ComponentInfo(_WireModel):
	name: StrictStr = Field(alias="nazwa")
	type: StrictStr = Field(alias="typ")
	description: StrictStr = Field(alias="opis")


class PriceEstimate(_WireModel):
	item: StrictStr = Field(alias="element")
	# Display string as returned ("120 PLN", "ok. 80-95 zł"), never parsed as a number
	price: StrictStr = Field(alias="cena")
	source: Optional[StrictStr] = Field(default=None, alias="zrodlo")


class Offer(_WireModel):
	key_points: List[StrictStr] = Field(alias="punkty_kluczowe")
	recommendations: List[StrictStr] = Field(alias="rekomendacje")


class AnalysisResult(_WireModel):
	title: StrictStr = Field(alias="tytul")
	description: StrictStr = Field(alias="opis")
	details: List[StrictStr] = Field(alias="detale")
	technical_assessment: StrictStr = Field(alias="ocena_techniczna")
	build_quality: StrictStr = Field(alias="jakosc_budowy")
	components: List[ComponentInfo] = Field(alias="komponenty")
	price_estimates: List[PriceEstimate] = Field(alias="ceny_szacunkowe")
	offer: Offer = Field(alias="oferta")
	email_draft: StrictStr = Field(alias="email_draft")
	standards_compliance: StrictStr = Field(alias="zgodnosc_z_normami")
	safety_clause: StrictStr = Field(alias="klauzula_bezpieczenstwa")

	def to_wire(self) -> Dict[str, Any]:
		"""Serialise back to the wire shape the model produced."""
		return self.model_dump(by_alias=True, exclude_unset=True)


def _string() -> Dict[str, Any]:
	return {"type": "STRING"}


def _string_list() -> Dict[str, Any]:
	return {"type": "ARRAY", "items": _string()}


# Response schema declared to Gemini; mirrors AnalysisResult field for field.
RESPONSE_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"tytul": _string(),
		"opis": _string(),
		"detale": _string_list(),
		"ocena_techniczna": _string(),
		"jakosc_budowy": _string(),
		"komponenty": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"nazwa": _string(),
					"typ": _string(),
					"opis": _string(),
				},
				"required": ["nazwa", "typ", "opis"],
			},
		},
		"ceny_szacunkowe": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"element": _string(),
					"cena": _string(),
					"zrodlo": _string(),
				},
				"required": ["element", "cena"],
			},
		},
		"oferta": {
			"type": "OBJECT",
			"properties": {
				"punkty_kluczowe": _string_list(),
				"rekomendacje": _string_list(),
			},
			"required": ["punkty_kluczowe", "rekomendacje"],
		},
		"email_draft": _string(),
		"zgodnosc_z_normami": _string(),
		"klauzula_bezpieczenstwa": _string(),
	},
	"required": [
		"tytul",
		"opis",
		"detale",
		"ocena_techniczna",
		"jakosc_budowy",
		"komponenty",
		"ceny_szacunkowe",
		"oferta",
		"email_draft",
		"zgodnosc_z_normami",
		"klauzula_bezpieczenstwa",
	],
}


class ImageUrlRequest(BaseModel):
	image_url: str


class ViewRequest(BaseModel):
	view: str
