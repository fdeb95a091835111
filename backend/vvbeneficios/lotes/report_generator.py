# vvbeneficios/lotes/report_generator.py
"""
Relatórios do lote: PDF das vidas aprovadas (enviado ao cliente junto com a
nota) e planilha das reprovadas (para correção).
"""

import io
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.lotes.models import StatusSeguradora
from vvbeneficios.shared.utils import formatar_valor, safe_decimal
from vvbeneficios.shared.validators import format_cnpj, format_cpf, only_digits

__all__ = [
    "formatar_valor",
    "mascarar_cpf",
    "gerar_relatorio_aprovados_pdf",
    "gerar_planilha_reprovados",
]

COLUNAS_REPROVADOS = {
    "nome": "Nome",
    "cpf": "CPF",
    "sexo": "Sexo",
    "data_nascimento": "Data Nascimento",
    "salario": "Salário",
    "motivo_reprovacao_seguradora": "Motivo",
    "tentativa_reenvio": "Tentativa",
}


def mascarar_cpf(cpf: Any) -> str:
    """123.456.789-09 -> ***.456.789-**"""
    digitos = only_digits(cpf)
    if len(digitos) != 11:
        return digitos
    return f"***.{digitos[3:6]}.{digitos[6:9]}-**"


def _data_br(valor: Any) -> str:
    if not valor:
        return ""
    try:
        return datetime.strptime(str(valor)[:10], "%Y-%m-%d").strftime("%d/%m/%Y")
    except ValueError:
        return str(valor)


def gerar_relatorio_aprovados_pdf(
    lote: Mapping[str, Any],
    itens: List[Mapping[str, Any]],
    empresa: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """
    Gera o PDF com as vidas aprovadas do lote.

    Args:
        lote: Registro de lotes_mensais
        itens: Itens de colaboradores_lote (qualquer status; só os aprovados entram)
        empresa: Registro da empresa (nome e CNPJ no cabeçalho)

    Returns:
        Conteúdo do PDF
    """
    aprovados = sorted(
        (i for i in itens if i.get("status_seguradora") == StatusSeguradora.APROVADO.value),
        key=lambda i: (i.get("nome") or "").upper(),
    )

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=1.5 * cm,
        leftMargin=1.5 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )

    elementos = []
    styles = getSampleStyleSheet()

    titulo_style = ParagraphStyle(
        "TituloLote",
        parent=styles["Heading1"],
        fontSize=14,
        textColor=colors.black,
        spaceAfter=6,
        alignment=TA_CENTER,
        fontName="Helvetica-Bold",
    )
    subtitulo_style = ParagraphStyle(
        "SubtituloLote",
        parent=styles["Normal"],
        fontSize=9,
        textColor=colors.black,
        spaceAfter=3,
        alignment=TA_LEFT,
    )

    elementos.append(Paragraph("<b>Relação de Vidas Aprovadas</b>", titulo_style))
    elementos.append(Spacer(1, 0.3 * cm))

    if empresa:
        cnpj = format_cnpj(empresa.get("cnpj") or "")
        elementos.append(
            Paragraph(f"Empresa: {empresa.get('nome', '')} - CNPJ: {cnpj}", subtitulo_style)
        )
    elementos.append(
        Paragraph(
            f"Competência: {lote.get('competencia', '')} "
            f"Emissão: {datetime.now().strftime('%d/%m/%Y')}",
            subtitulo_style,
        )
    )
    elementos.append(Spacer(1, 0.5 * cm))

    dados_tabela = [
        [
            Paragraph("<b>Nome</b>", styles["Normal"]),
            Paragraph("<b>CPF</b>", styles["Normal"]),
            Paragraph("<b>Nascimento</b>", styles["Normal"]),
            Paragraph("<b>Salário</b>", styles["Normal"]),
        ]
    ]

    total_salarios = safe_decimal(0)
    for item in aprovados:
        dados_tabela.append(
            [
                item.get("nome", ""),
                mascarar_cpf(item.get("cpf")),
                _data_br(item.get("data_nascimento")),
                formatar_valor(item.get("salario")),
            ]
        )
        total_salarios += safe_decimal(item.get("salario"))

    valor_total = safe_decimal(len(aprovados) * settings.VALOR_POR_VIDA)
    dados_tabela.append(
        [
            Paragraph(f"<b>Total ({len(aprovados)} vidas)</b>", styles["Normal"]),
            "",
            "",
            Paragraph(f"<b>{formatar_valor(total_salarios)}</b>", styles["Normal"]),
        ]
    )
    dados_tabela.append(
        [
            Paragraph("<b>Valor do lote</b>", styles["Normal"]),
            "",
            "",
            Paragraph(f"<b>R$ {formatar_valor(valor_total)}</b>", styles["Normal"]),
        ]
    )

    tabela = Table(dados_tabela, colWidths=[8 * cm, 3.5 * cm, 2.5 * cm, 3 * cm], repeatRows=1)
    tabela.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 9),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                ("TOPPADDING", (0, 0), (-1, 0), 8),
                ("LINEBELOW", (0, 0), (-1, 0), 1, colors.black),
                ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 1), (-1, -1), 8),
                ("ALIGN", (1, 1), (2, -1), "CENTER"),
                ("ALIGN", (3, 1), (3, -1), "RIGHT"),
                ("LINEABOVE", (0, -2), (-1, -2), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    elementos.append(tabela)

    elementos.append(Spacer(1, 0.5 * cm))
    elementos.append(
        Paragraph(
            f"<i>Gerado em {datetime.now().strftime('%d/%m/%Y às %H:%M:%S')} - {settings.APP_NAME}</i>",
            ParagraphStyle(
                "Rodape",
                parent=styles["Normal"],
                fontSize=7,
                textColor=colors.grey,
                alignment=TA_RIGHT,
            ),
        )
    )

    doc.build(elementos)
    log.success(f"PDF de aprovados gerado para o lote {lote.get('id')}: {len(aprovados)} vidas")
    return buffer.getvalue()


def gerar_planilha_reprovados(
    lote: Mapping[str, Any], itens: List[Mapping[str, Any]]
) -> bytes:
    """Planilha das vidas reprovadas (tentativa atual e anteriores) para correção."""
    reprovados = [
        i for i in itens if i.get("status_seguradora") == StatusSeguradora.REPROVADO.value
    ]

    df = pd.DataFrame(reprovados, columns=list(COLUNAS_REPROVADOS))
    if not df.empty:
        df["cpf"] = df["cpf"].map(format_cpf)
        df["data_nascimento"] = df["data_nascimento"].map(_data_br)
    df = df.rename(columns=COLUNAS_REPROVADOS)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Reprovados")
        ws = writer.sheets["Reprovados"]
        for idx, largura in enumerate([35, 15, 12, 16, 12, 45, 10], start=1):
            ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = largura

    log.info(f"Planilha de reprovados do lote {lote.get('id')}: {len(df)} linhas")
    return buffer.getvalue()


def resumo_lote(lote: Mapping[str, Any]) -> Dict[str, str]:
    """Totais já formatados para exibição no painel."""
    return {
        "competencia": lote.get("competencia", ""),
        "vidas": str(lote.get("total_aprovados") or 0),
        "reprovadas": str(lote.get("total_reprovados") or 0),
        "valor_total": f"R$ {formatar_valor(lote.get('valor_total'))}",
    }
